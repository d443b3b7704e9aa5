import uuid
from datetime import date, datetime, time, timezone

from sqlalchemy import ColumnElement, and_, or_, true

from incident_desk.models.ticket import Ticket
from incident_desk.schemas.search import SearchCriteria
from incident_desk.services.query_parser import ParsedQuery, SearchTerm, parse_query


def start_of_day(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def end_of_day(value: date) -> datetime:
    return datetime.combine(value, time.max, tzinfo=timezone.utc)


def term_condition(term: SearchTerm) -> ColumnElement[bool]:
    """Case-insensitive literal substring match on title or description.

    ``autoescape`` escapes LIKE wildcards in the term, so ``100%`` or
    ``(urgent)`` only ever match themselves.
    """
    clauses = [
        Ticket.title.icontains(term.text, autoescape=True),
        Ticket.description.icontains(term.text, autoescape=True),
    ]
    if term.is_identifier:
        clauses.append(Ticket.ticket_number.icontains(term.identifier, autoescape=True))
    return or_(*clauses)


def text_condition(parsed: ParsedQuery) -> ColumnElement[bool] | None:
    if parsed.is_empty:
        return None
    branches = [and_(*(term_condition(term) for term in group)) for group in parsed.groups]
    if len(branches) == 1:
        return branches[0]
    return or_(*branches)


def access_scope_condition(caller_id: uuid.UUID) -> ColumnElement[bool]:
    """Restrict a non-privileged caller to tickets they reported or are assigned."""
    return or_(Ticket.reporter_id == caller_id, Ticket.assignee_id == caller_id)


def build_conditions(
    criteria: SearchCriteria,
    caller_id: uuid.UUID | None = None,
) -> list[ColumnElement[bool]]:
    conditions = []

    if caller_id is not None:
        conditions.append(access_scope_condition(caller_id))

    # --- Structured filters ---
    if criteria.status is not None:
        conditions.append(Ticket.status == criteria.status)

    if criteria.priority is not None:
        conditions.append(Ticket.priority == criteria.priority)

    if criteria.category is not None:
        conditions.append(Ticket.category == criteria.category)

    if criteria.assignee_id is not None:
        conditions.append(Ticket.assignee_id == criteria.assignee_id)

    if criteria.date_from is not None:
        conditions.append(Ticket.created_at >= start_of_day(criteria.date_from))

    if criteria.date_to is not None:
        conditions.append(Ticket.created_at <= end_of_day(criteria.date_to))

    # --- Free text ---
    text_clause = text_condition(parse_query(criteria.search_text))
    if text_clause is not None:
        conditions.append(text_clause)

    return conditions


def build_search_filter(
    criteria: SearchCriteria,
    caller_id: uuid.UUID | None = None,
) -> ColumnElement[bool]:
    """Compile criteria and the optional access scope into one AND-ed filter."""
    conditions = build_conditions(criteria, caller_id)
    if not conditions:
        return true()
    return and_(*conditions)
