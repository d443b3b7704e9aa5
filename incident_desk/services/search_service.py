import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from incident_desk.config import settings
from incident_desk.models.ticket import Ticket
from incident_desk.schemas.search import SearchCriteria
from incident_desk.services.search_filters import build_search_filter

logger = logging.getLogger(__name__)


_TICKET_LOAD_OPTIONS = [
    selectinload(Ticket.reporter),
    selectinload(Ticket.assignee),
]


async def search_tickets(
    db: AsyncSession,
    criteria: SearchCriteria,
    caller_id: uuid.UUID | None = None,
) -> list[Ticket]:
    """Run an advanced search, newest tickets first.

    ``caller_id`` restricts results to tickets the caller reported or is
    assigned to; pass None for privileged callers. Database errors are
    propagated unchanged.
    """
    query = (
        select(Ticket)
        .where(build_search_filter(criteria, caller_id))
        .order_by(Ticket.created_at.desc(), Ticket.id.desc())
        .offset(criteria.skip)
        .limit(criteria.effective_limit)
        .options(*_TICKET_LOAD_OPTIONS)
    )

    result = await db.execute(query)
    tickets = list(result.scalars().all())

    logger.info(
        "Ticket search scoped=%s filtered=%s text=%r skip=%d limit=%d returned %d tickets",
        caller_id is not None,
        criteria.has_criteria,
        criteria.search_text,
        criteria.skip,
        criteria.effective_limit,
        len(tickets),
    )
    return tickets


async def quick_search(
    db: AsyncSession,
    text: str | None,
    caller_id: uuid.UUID | None = None,
) -> list[Ticket]:
    """Free-text-only search with a small fixed limit. Blank text matches nothing."""
    if text is None or not text.strip():
        return []

    criteria = SearchCriteria(search_text=text, limit=settings.quick_search_limit)
    return await search_tickets(db, criteria, caller_id)


async def search_suggestions(
    db: AsyncSession,
    term: str | None,
    caller_id: uuid.UUID | None = None,
) -> list[str]:
    """Autocomplete words taken from the titles of matching tickets."""
    term = (term or "").strip()
    if len(term) < settings.suggestion_min_length:
        return []

    needle = term.lower()
    tickets = await quick_search(db, term, caller_id)

    suggestions: list[str] = []
    for ticket in tickets:
        for word in ticket.title.split():
            if len(word) > 2 and needle in word.lower() and word not in suggestions:
                suggestions.append(word)
                if len(suggestions) >= settings.suggestion_limit:
                    return suggestions
    return suggestions
