import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class UserRole(str, enum.Enum):
    admin = "admin"
    service_desk = "service_desk"
    regular = "regular"


class TicketStatus(str, enum.Enum):
    open = "open"
    resolved = "resolved"
    closed = "closed"


class TicketPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class TicketCategory(str, enum.Enum):
    hardware = "hardware"
    software = "software"
    network = "network"
    access = "access"
    other = "other"


PRIVILEGED_ROLES = frozenset({UserRole.admin, UserRole.service_desk})


def enum_column_type(enum_cls: type[enum.Enum], name: str) -> Enum:
    """Store enum values (not member names), native on PostgreSQL."""
    return Enum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])
