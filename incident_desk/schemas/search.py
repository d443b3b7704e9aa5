import uuid
from datetime import date

from pydantic import BaseModel, Field, field_validator

from incident_desk.config import settings
from incident_desk.models.base import TicketCategory, TicketPriority, TicketStatus
from incident_desk.schemas.ticket import TicketListResponse


class SearchCriteria(BaseModel):
    search_text: str = ""
    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    category: TicketCategory | None = None
    assignee_id: uuid.UUID | None = None
    # Inclusive calendar dates; date_from <= date_to is the caller's responsibility.
    date_from: date | None = None
    date_to: date | None = None
    skip: int = Field(0, ge=0)
    limit: int | None = Field(None, gt=0)

    @field_validator("search_text", mode="before")
    @classmethod
    def normalize_search_text(cls, value):
        if value is None:
            return ""
        if isinstance(value, str):
            value = value.strip()
            if len(value) > settings.search_text_max_length:
                raise ValueError(
                    f"Search text cannot exceed {settings.search_text_max_length} characters"
                )
        return value

    @property
    def effective_limit(self) -> int:
        """The requested page size, defaulted and capped by configuration."""
        if self.limit is None:
            return settings.search_max_limit
        return min(self.limit, settings.search_max_limit)

    @property
    def has_criteria(self) -> bool:
        return bool(
            self.search_text
            or self.status is not None
            or self.priority is not None
            or self.category is not None
            or self.assignee_id is not None
            or self.date_from is not None
            or self.date_to is not None
        )


class SearchResponse(BaseModel):
    items: list[TicketListResponse]
    count: int
    skip: int
    limit: int
    available: bool = True
    detail: str | None = None
