from incident_desk.models.base import (
    PRIVILEGED_ROLES,
    Base,
    TicketCategory,
    TicketPriority,
    TicketStatus,
    TimestampMixin,
    UserRole,
)
from incident_desk.models.ticket import Ticket
from incident_desk.models.user import User

__all__ = [
    "PRIVILEGED_ROLES",
    "Base",
    "TicketCategory",
    "TicketPriority",
    "TicketStatus",
    "TimestampMixin",
    "UserRole",
    "Ticket",
    "User",
]
