import uuid
from datetime import datetime

from pydantic import BaseModel, computed_field

from incident_desk.models.base import TicketCategory, TicketPriority


def _percentage(count: int, total: int) -> float:
    return count / total * 100 if total > 0 else 0.0


class PriorityCount(BaseModel):
    priority: TicketPriority
    count: int


class CategoryCount(BaseModel):
    category: TicketCategory
    count: int


class AssigneeCount(BaseModel):
    assignee_name: str
    count: int


class RecentTicket(BaseModel):
    """Dashboard row for a recently created ticket.

    Status and priority are the stored labels, so a row written by an older
    client with an unknown label is still listed.
    """

    id: uuid.UUID
    ticket_number: str
    title: str
    status: str
    priority: str
    created_at: datetime


class ScopedDashboardStats(BaseModel):
    """Status breakdown for the tickets a single user reported."""

    total_tickets: int = 0
    open_tickets: int = 0
    resolved_tickets: int = 0
    closed_tickets: int = 0
    # High priority and not yet resolved or closed.
    urgent_tickets: int = 0
    recent_tickets: list[RecentTicket] = []

    @computed_field
    @property
    def open_percentage(self) -> float:
        return _percentage(self.open_tickets, self.total_tickets)

    @computed_field
    @property
    def resolved_percentage(self) -> float:
        return _percentage(self.resolved_tickets, self.total_tickets)

    @computed_field
    @property
    def closed_percentage(self) -> float:
        return _percentage(self.closed_tickets, self.total_tickets)


class GlobalDashboardStats(ScopedDashboardStats):
    """Organisation-wide statistics shown on the service desk dashboard."""

    unassigned_tickets: int = 0
    average_resolution_hours: float = 0.0
    by_priority: list[PriorityCount] = []
    by_category: list[CategoryCount] = []
    by_assignee: list[AssigneeCount] = []
