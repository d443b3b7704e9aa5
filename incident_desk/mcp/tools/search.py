from datetime import date
from typing import Annotated

from mcp.types import ToolAnnotations
from pydantic import BaseModel, Field, ValidationError

from incident_desk.api.dependencies import access_scope
from incident_desk.database import async_session
from incident_desk.mcp.auth import get_current_mcp_user
from incident_desk.mcp.server import mcp
from incident_desk.models.ticket import Ticket
from incident_desk.schemas.search import SearchCriteria
from incident_desk.services import search_service


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class TicketSearchItemData(BaseModel):
    id: str = Field(description="Ticket UUID")
    ticket_number: str = Field(description="Ticket number (e.g. INC-0001)")
    title: str = Field(description="Ticket title")
    status: str = Field(description="Current status")
    priority: str = Field(description="Priority level")
    category: str = Field(description="Ticket category")
    reporter_name: str | None = Field(description="Reporter's display name")
    assignee_name: str | None = Field(description="Assignee's display name")
    created_at: str = Field(description="ISO 8601 timestamp")


class TicketSearchData(BaseModel):
    count: int = Field(description="Number of tickets returned")
    skip: int = Field(description="Number of matching tickets skipped")
    tickets: list[TicketSearchItemData] = Field(description="Matching tickets, newest first")


class SearchTicketsResult(BaseModel):
    summary: str = Field(description="Human-readable result message")
    data: TicketSearchData | None = Field(description="Search results, or null on error")


def _item(ticket: Ticket) -> TicketSearchItemData:
    return TicketSearchItemData(
        id=str(ticket.id),
        ticket_number=ticket.ticket_number,
        title=ticket.title,
        status=ticket.status.value,
        priority=ticket.priority.value,
        category=ticket.category.value,
        reporter_name=ticket.reporter_name,
        assignee_name=ticket.assignee_name,
        created_at=ticket.created_at.isoformat(),
    )


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


@mcp.tool(
    description="Search tickets with AND/OR free text and optional filters",
    annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False),
)
async def search_tickets(
    search_text: Annotated[str, Field(description="Free text, e.g. 'network AND server' or 'email OR printer'")] = "",
    status: Annotated[str | None, Field(description="open, resolved, or closed")] = None,
    priority: Annotated[str | None, Field(description="low, medium, high, or critical")] = None,
    category: Annotated[str | None, Field(description="hardware, software, network, access, or other")] = None,
    date_from: Annotated[date | None, Field(description="Earliest creation date (inclusive)")] = None,
    date_to: Annotated[date | None, Field(description="Latest creation date (inclusive)")] = None,
    skip: Annotated[int, Field(description="Number of results to skip")] = 0,
    limit: Annotated[int | None, Field(description="Maximum number of results")] = None,
) -> SearchTicketsResult:
    """Search tickets visible to the caller, newest first.

    Regular users only see tickets they reported or are assigned to.
    """
    try:
        criteria = SearchCriteria(
            search_text=search_text,
            status=status,
            priority=priority,
            category=category,
            date_from=date_from,
            date_to=date_to,
            skip=skip,
            limit=limit,
        )
    except ValidationError as e:
        return SearchTicketsResult(summary=f"Error: invalid search criteria: {e}", data=None)

    try:
        async with async_session() as db:
            current_user = await get_current_mcp_user(db)
            tickets = await search_service.search_tickets(db, criteria, access_scope(current_user))
            return SearchTicketsResult(
                summary=f"Found {len(tickets)} ticket(s)",
                data=TicketSearchData(
                    count=len(tickets),
                    skip=criteria.skip,
                    tickets=[_item(ticket) for ticket in tickets],
                ),
            )
    except ValueError as e:
        return SearchTicketsResult(summary=f"Error: {e}", data=None)
    except Exception as e:
        return SearchTicketsResult(summary=f"Unexpected error: {e}", data=None)


@mcp.tool(
    description="Quick free-text ticket search with a small result limit",
    annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False),
)
async def quick_search(
    query: Annotated[str, Field(description="Free text; AND/OR operators are supported")],
) -> SearchTicketsResult:
    """Quick search for type-ahead style lookups. Blank text returns nothing."""
    try:
        async with async_session() as db:
            current_user = await get_current_mcp_user(db)
            tickets = await search_service.quick_search(db, query, access_scope(current_user))
            return SearchTicketsResult(
                summary=f"Found {len(tickets)} ticket(s)",
                data=TicketSearchData(
                    count=len(tickets),
                    skip=0,
                    tickets=[_item(ticket) for ticket in tickets],
                ),
            )
    except ValueError as e:
        return SearchTicketsResult(summary=f"Error: {e}", data=None)
    except Exception as e:
        return SearchTicketsResult(summary=f"Unexpected error: {e}", data=None)
