import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.orm import Mapped, mapped_column, relationship

from incident_desk.models.base import (
    Base,
    TicketCategory,
    TicketPriority,
    TicketStatus,
    TimestampMixin,
    enum_column_type,
)

if TYPE_CHECKING:
    from incident_desk.models.user import User


class Ticket(TimestampMixin, Base):
    __tablename__ = "tickets"
    __table_args__ = (
        Index("ix_tickets_status", "status"),
        Index("ix_tickets_priority", "priority"),
        Index("ix_tickets_category", "category"),
        Index("ix_tickets_reporter_id", "reporter_id"),
        Index("ix_tickets_assignee_id", "assignee_id"),
        Index("ix_tickets_created_at", "created_at"),
    )

    ticket_number: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[TicketStatus] = mapped_column(
        enum_column_type(TicketStatus, "ticketstatus"),
        default=TicketStatus.open,
        nullable=False,
    )
    priority: Mapped[TicketPriority] = mapped_column(
        enum_column_type(TicketPriority, "ticketpriority"),
        default=TicketPriority.medium,
        nullable=False,
    )
    category: Mapped[TicketCategory] = mapped_column(
        enum_column_type(TicketCategory, "ticketcategory"),
        default=TicketCategory.other,
        nullable=False,
    )
    reporter_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    assignee_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    reporter: Mapped["User"] = relationship("User", foreign_keys=[reporter_id], lazy="raise")
    assignee: Mapped[Optional["User"]] = relationship(
        "User", foreign_keys=[assignee_id], lazy="raise"
    )

    @property
    def reporter_name(self) -> str | None:
        try:
            return self.reporter.full_name
        except InvalidRequestError:
            return None

    @property
    def assignee_name(self) -> str | None:
        try:
            return self.assignee.full_name if self.assignee else None
        except InvalidRequestError:
            return None

    @property
    def resolution_hours(self) -> float | None:
        if self.resolved_at is None:
            return None
        return (self.resolved_at - self.created_at).total_seconds() / 3600
