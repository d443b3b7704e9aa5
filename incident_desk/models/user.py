from typing import Optional

from sqlalchemy import Boolean, String, true
from sqlalchemy.orm import Mapped, mapped_column

from incident_desk.models.base import PRIVILEGED_ROLES, Base, TimestampMixin, UserRole, enum_column_type


class User(TimestampMixin, Base):
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        enum_column_type(UserRole, "userrole"), default=UserRole.regular, nullable=False
    )
    department: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default=true())

    @property
    def is_privileged(self) -> bool:
        return self.role in PRIVILEGED_ROLES
