import uuid
from datetime import datetime

from pydantic import BaseModel

from incident_desk.models.base import TicketCategory, TicketPriority, TicketStatus


class TicketListResponse(BaseModel):
    id: uuid.UUID
    ticket_number: str
    title: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    category: TicketCategory
    reporter_id: uuid.UUID
    reporter_name: str | None = None
    assignee_id: uuid.UUID | None
    assignee_name: str | None = None
    created_at: datetime
    updated_at: datetime
    resolved_at: datetime | None
    closed_at: datetime | None
    resolution_hours: float | None = None

    model_config = {"from_attributes": True}


class QuickSearchItem(BaseModel):
    id: uuid.UUID
    ticket_number: str
    subject: str
    status: TicketStatus
    priority: TicketPriority
    timestamp: str
