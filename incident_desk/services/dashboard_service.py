"""Dashboard statistics.

Each facet is an independent statement over the ticket table; the merge
functions are pure and assemble the fixed result models from facet rows.
Labels are read back as raw strings so that a value outside the known enum
is skipped during merge instead of failing the whole dashboard.
"""

import enum
import logging
import uuid
from collections.abc import Iterable, Sequence
from typing import Any

from sqlalchemy import Select, String, case, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from incident_desk.config import settings
from incident_desk.models.base import TicketCategory, TicketPriority, TicketStatus
from incident_desk.models.ticket import Ticket
from incident_desk.models.user import User
from incident_desk.schemas.dashboard import (
    AssigneeCount,
    CategoryCount,
    GlobalDashboardStats,
    PriorityCount,
    RecentTicket,
    ScopedDashboardStats,
)
from incident_desk.services.sql_functions import hours_between

logger = logging.getLogger(__name__)

FacetRows = Iterable[Sequence[Any]]


# ---------------------------------------------------------------------------
# Facets
# ---------------------------------------------------------------------------

def _label_counts(column, reporter_id: uuid.UUID | None = None) -> Select:
    label = cast(column, String)
    query = select(label, func.count()).group_by(label)
    if reporter_id is not None:
        query = query.where(Ticket.reporter_id == reporter_id)
    return query


def status_facet(reporter_id: uuid.UUID | None = None) -> Select:
    return _label_counts(Ticket.status, reporter_id)


def priority_facet() -> Select:
    return _label_counts(Ticket.priority)


def category_facet() -> Select:
    return _label_counts(Ticket.category)


def assignee_facet() -> Select:
    """Ticket count per assignee display name; unassigned tickets drop out of the join."""
    return (
        select(User.full_name, func.count())
        .join(Ticket, Ticket.assignee_id == User.id)
        .group_by(User.full_name)
        .order_by(func.count().desc(), User.full_name)
    )


def resolution_facet() -> Select:
    """Mean hours from creation to resolution over resolved tickets (NULL when none)."""
    return select(func.avg(hours_between(Ticket.created_at, Ticket.resolved_at))).where(
        Ticket.resolved_at.isnot(None)
    )


def general_facet() -> Select:
    unassigned = case((Ticket.assignee_id.is_(None), 1), else_=0)
    return select(func.count(Ticket.id), func.coalesce(func.sum(unassigned), 0))


def urgent_facet(reporter_id: uuid.UUID | None = None) -> Select:
    """High priority tickets that are neither resolved nor closed."""
    query = select(func.count()).select_from(Ticket).where(
        Ticket.priority == TicketPriority.high,
        Ticket.status.notin_([TicketStatus.resolved, TicketStatus.closed]),
    )
    if reporter_id is not None:
        query = query.where(Ticket.reporter_id == reporter_id)
    return query


def recent_facet(reporter_id: uuid.UUID | None = None) -> Select:
    """Newest tickets first, same order as search results."""
    query = (
        select(
            Ticket.id,
            Ticket.ticket_number,
            Ticket.title,
            cast(Ticket.status, String),
            cast(Ticket.priority, String),
            Ticket.created_at,
        )
        .order_by(Ticket.created_at.desc(), Ticket.id.desc())
        .limit(settings.dashboard_recent_limit)
    )
    if reporter_id is not None:
        query = query.where(Ticket.reporter_id == reporter_id)
    return query


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------

def count_by_enum(rows: FacetRows, enum_cls: type[enum.Enum]) -> dict[Any, int]:
    """Map raw (label, count) rows onto every member of ``enum_cls``."""
    counts = {member: 0 for member in enum_cls}
    for label, count in rows:
        try:
            member = enum_cls(label)
        except ValueError:
            logger.debug("Skipping unrecognized %s label %r", enum_cls.__name__, label)
            continue
        counts[member] += count
    return counts


def recent_tickets(rows: FacetRows) -> list[RecentTicket]:
    return [
        RecentTicket(
            id=ticket_id,
            ticket_number=ticket_number,
            title=title,
            status=status,
            priority=priority,
            created_at=created_at,
        )
        for ticket_id, ticket_number, title, status, priority, created_at in rows
    ]


def merge_scoped_stats(
    status_rows: FacetRows,
    urgent_count: int | None = 0,
    recent_rows: FacetRows = (),
) -> ScopedDashboardStats:
    status_rows = list(status_rows)
    by_status = count_by_enum(status_rows, TicketStatus)
    return ScopedDashboardStats(
        total_tickets=sum(count for _, count in status_rows),
        open_tickets=by_status[TicketStatus.open],
        resolved_tickets=by_status[TicketStatus.resolved],
        closed_tickets=by_status[TicketStatus.closed],
        urgent_tickets=urgent_count or 0,
        recent_tickets=recent_tickets(recent_rows),
    )


def merge_global_stats(
    status_rows: FacetRows,
    priority_rows: FacetRows,
    category_rows: FacetRows,
    assignee_rows: FacetRows,
    average_resolution_hours: float | None,
    general_row: Sequence[Any] | None,
    urgent_count: int | None = 0,
    recent_rows: FacetRows = (),
) -> GlobalDashboardStats:
    by_status = count_by_enum(status_rows, TicketStatus)
    by_priority = count_by_enum(priority_rows, TicketPriority)
    by_category = count_by_enum(category_rows, TicketCategory)
    total, unassigned = general_row if general_row is not None else (0, 0)

    return GlobalDashboardStats(
        total_tickets=total or 0,
        open_tickets=by_status[TicketStatus.open],
        resolved_tickets=by_status[TicketStatus.resolved],
        closed_tickets=by_status[TicketStatus.closed],
        urgent_tickets=urgent_count or 0,
        recent_tickets=recent_tickets(recent_rows),
        unassigned_tickets=unassigned or 0,
        average_resolution_hours=float(average_resolution_hours or 0.0),
        by_priority=[PriorityCount(priority=p, count=c) for p, c in by_priority.items()],
        by_category=[CategoryCount(category=k, count=c) for k, c in by_category.items()],
        by_assignee=[
            AssigneeCount(assignee_name=name, count=count)
            for name, count in assignee_rows
            if name is not None
        ],
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_scoped_stats(db: AsyncSession, reporter_id: uuid.UUID) -> ScopedDashboardStats:
    """Status breakdown of the tickets reported by ``reporter_id``."""
    status_rows = (await db.execute(status_facet(reporter_id))).all()
    urgent_count = (await db.execute(urgent_facet(reporter_id))).scalar()
    recent_rows = (await db.execute(recent_facet(reporter_id))).all()
    return merge_scoped_stats(status_rows, urgent_count, recent_rows)


async def get_global_stats(db: AsyncSession) -> GlobalDashboardStats:
    """Organisation-wide statistics. Database errors are propagated unchanged."""
    status_rows = (await db.execute(status_facet())).all()
    priority_rows = (await db.execute(priority_facet())).all()
    category_rows = (await db.execute(category_facet())).all()
    assignee_rows = (await db.execute(assignee_facet())).all()
    average_hours = (await db.execute(resolution_facet())).scalar()
    general_row = (await db.execute(general_facet())).one_or_none()
    urgent_count = (await db.execute(urgent_facet())).scalar()
    recent_rows = (await db.execute(recent_facet())).all()

    return merge_global_stats(
        status_rows,
        priority_rows,
        category_rows,
        assignee_rows,
        average_hours,
        general_row,
        urgent_count,
        recent_rows,
    )
