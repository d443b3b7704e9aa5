import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from incident_desk.api.dependencies import CurrentUser, access_scope, get_current_user
from incident_desk.config import settings
from incident_desk.database import get_db
from incident_desk.schemas.search import SearchCriteria, SearchResponse
from incident_desk.schemas.ticket import QuickSearchItem, TicketListResponse
from incident_desk.services import search_service

logger = logging.getLogger(__name__)

router = APIRouter()

SEARCH_UNAVAILABLE = "Search is temporarily unavailable. Please try again later."

# Store failures surface as these; they are reported to the client as an
# empty, unavailable result instead of an error page.
_STORE_ERRORS = (SQLAlchemyError, OSError)


@router.post("/", response_model=SearchResponse)
async def search_tickets(
    criteria: SearchCriteria,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Advanced search with AND/OR text operators, newest tickets first."""
    try:
        tickets = await search_service.search_tickets(db, criteria, access_scope(current_user))
    except _STORE_ERRORS:
        logger.exception("Ticket search failed for user %s", current_user.user.id)
        return SearchResponse(
            items=[],
            count=0,
            skip=criteria.skip,
            limit=criteria.effective_limit,
            available=False,
            detail=SEARCH_UNAVAILABLE,
        )

    return SearchResponse(
        items=[TicketListResponse.model_validate(ticket) for ticket in tickets],
        count=len(tickets),
        skip=criteria.skip,
        limit=criteria.effective_limit,
    )


@router.get("/quick", response_model=list[QuickSearchItem])
async def quick_search(
    q: str = Query("", max_length=settings.search_text_max_length),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Type-ahead search returning a short list of matching tickets."""
    try:
        tickets = await search_service.quick_search(db, q, access_scope(current_user))
    except _STORE_ERRORS:
        logger.exception("Quick search failed for user %s", current_user.user.id)
        return []

    return [
        QuickSearchItem(
            id=ticket.id,
            ticket_number=ticket.ticket_number,
            subject=ticket.title,
            status=ticket.status,
            priority=ticket.priority,
            timestamp=ticket.created_at.strftime("%Y-%m-%d %H:%M"),
        )
        for ticket in tickets[: settings.quick_search_display_limit]
    ]


@router.get("/suggestions", response_model=list[str])
async def search_suggestions(
    term: str = Query("", max_length=settings.search_text_max_length),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Autocomplete suggestions drawn from matching ticket titles."""
    try:
        return await search_service.search_suggestions(db, term, access_scope(current_user))
    except _STORE_ERRORS:
        logger.exception("Search suggestions failed for user %s", current_user.user.id)
        return []
