import asyncio
import uuid

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from incident_desk.mcp.auth import McpAuthInfo, McpAuthMiddleware, authenticate_bearer, mcp_auth_var
from incident_desk.mcp.server import mcp
from incident_desk.mcp.tools import dashboard as mcp_dashboard
from incident_desk.mcp.tools import search as mcp_search
from incident_desk.models.base import TicketStatus
from incident_desk.models.user import User
from incident_desk.services.auth_service import create_access_token
from tests.conftest import auth_header


@pytest.fixture
def as_user():
    """Set the MCP caller identity, as the auth middleware does per request.

    Each async test runs in its own task context, so the value is gone
    once the test finishes.
    """
    def _as(user: User) -> None:
        mcp_auth_var.set(McpAuthInfo(user_id=user.id))

    return _as


# ---------------------------------------------------------------------------
# Tool registration
# ---------------------------------------------------------------------------


async def test_tools_are_registered():
    names = {tool.name for tool in await mcp.list_tools()}
    assert {"search_tickets", "quick_search", "get_my_dashboard", "get_dashboard_summary"} <= names


# ---------------------------------------------------------------------------
# Search tools
# ---------------------------------------------------------------------------


async def test_search_without_auth_returns_error(mcp_db: AsyncSession):
    result = await mcp_search.search_tickets(search_text="printer")

    assert result.data is None
    assert "Authentication required" in result.summary


async def test_search_is_scoped_for_regular_caller(
    mcp_db: AsyncSession, as_user, make_ticket, regular_user: User, other_user: User,
):
    await make_ticket("Printer mine")
    await make_ticket("Printer theirs", reporter=other_user)
    as_user(regular_user)

    result = await mcp_search.search_tickets(search_text="printer")

    assert result.summary == "Found 1 ticket(s)"
    assert [t.title for t in result.data.tickets] == ["Printer mine"]
    assert result.data.tickets[0].ticket_number == "INC-0001"
    assert result.data.tickets[0].status == "open"


async def test_search_unrestricted_for_desk_caller(
    mcp_db: AsyncSession, as_user, make_ticket, desk_user: User, other_user: User,
):
    await make_ticket("Printer mine")
    await make_ticket("Printer theirs", reporter=other_user)
    await make_ticket("Email", reporter=other_user)
    as_user(desk_user)

    result = await mcp_search.search_tickets(search_text="printer OR email", limit=2)

    assert [t.title for t in result.data.tickets] == ["Email", "Printer theirs"]


async def test_search_rejects_invalid_criteria(mcp_db: AsyncSession, as_user, desk_user: User):
    as_user(desk_user)

    result = await mcp_search.search_tickets(status="escalated")

    assert result.data is None
    assert result.summary.startswith("Error: invalid search criteria")


async def test_quick_search_tool(
    mcp_db: AsyncSession, as_user, make_ticket, regular_user: User,
):
    await make_ticket("VPN drops")
    as_user(regular_user)

    found = await mcp_search.quick_search(query="vpn")
    blank = await mcp_search.quick_search(query="   ")

    assert [t.title for t in found.data.tickets] == ["VPN drops"]
    assert blank.data.count == 0


async def test_caller_identity_stays_in_its_task(
    mcp_db: AsyncSession, as_user, make_ticket, regular_user: User,
):
    await make_ticket("Printer mine")

    async def _call_as_regular_user():
        as_user(regular_user)
        return await mcp_search.quick_search(query="printer")

    result = await asyncio.create_task(_call_as_regular_user())

    assert result.data.count == 1
    assert mcp_auth_var.get() is None
    anonymous = await mcp_search.quick_search(query="printer")
    assert anonymous.data is None


async def test_inactive_user_rejected(mcp_db: AsyncSession, as_user, regular_user: User):
    regular_user.is_active = False
    await mcp_db.commit()
    as_user(regular_user)

    result = await mcp_search.search_tickets()

    assert result.data is None
    assert "not found or inactive" in result.summary


# ---------------------------------------------------------------------------
# Dashboard tools
# ---------------------------------------------------------------------------


async def test_my_dashboard_tool(mcp_db: AsyncSession, as_user, make_ticket, regular_user: User):
    await make_ticket("Open")
    await make_ticket("Closed", status=TicketStatus.closed)
    as_user(regular_user)

    result = await mcp_dashboard.get_my_dashboard()

    assert result.data.total_tickets == 2
    assert result.summary == "2 ticket(s): 1 open, 0 resolved, 1 closed, 0 urgent"
    assert [t.title for t in result.data.recent_tickets] == ["Closed", "Open"]


async def test_dashboard_summary_requires_privileged_role(
    mcp_db: AsyncSession, as_user, regular_user: User,
):
    as_user(regular_user)

    result = await mcp_dashboard.get_dashboard_summary()

    assert result.data is None
    assert result.summary == "Error: Service desk role required"


async def test_dashboard_summary_for_desk_caller(
    mcp_db: AsyncSession, as_user, make_ticket, desk_user: User,
):
    await make_ticket("Unassigned")
    as_user(desk_user)

    result = await mcp_dashboard.get_dashboard_summary()

    assert result.data.total_tickets == 1
    assert result.data.unassigned_tickets == 1
    assert result.summary.startswith("1 ticket(s), 1 unassigned")


# ---------------------------------------------------------------------------
# Transport authentication
# ---------------------------------------------------------------------------


def test_authenticate_bearer_accepts_access_token():
    user_id = uuid.uuid4()

    info = authenticate_bearer(f"Bearer {create_access_token(user_id, 'regular')}")

    assert info == McpAuthInfo(user_id=user_id)


@pytest.mark.parametrize("header", ["Basic abc", "Bearer not-a-jwt", "Bearer "])
def test_authenticate_bearer_rejects(header):
    with pytest.raises(ValueError):
        authenticate_bearer(header)


@pytest.fixture
async def guarded_client():
    """An ASGI app behind the MCP auth middleware that echoes the caller identity."""
    async def _echo(scope, receive, send):
        info = mcp_auth_var.get()
        body = (str(info.user_id) if info else "anonymous").encode("utf-8")
        await send({"type": "http.response.start", "status": 200, "headers": [[b"content-type", b"text/plain"]]})
        await send({"type": "http.response.body", "body": body})

    transport = ASGITransport(app=McpAuthMiddleware(_echo))
    async with AsyncClient(transport=transport, base_url="http://localhost") as ac:
        yield ac


async def test_middleware_sets_identity(guarded_client: AsyncClient):
    user_id = uuid.uuid4()
    token = create_access_token(user_id, "service_desk")

    resp = await guarded_client.post("/", headers=auth_header(token))

    assert resp.status_code == 200
    assert resp.text == str(user_id)
    assert mcp_auth_var.get() is None


async def test_middleware_passes_anonymous_requests(guarded_client: AsyncClient):
    resp = await guarded_client.post("/")

    assert resp.text == "anonymous"


async def test_middleware_rejects_bad_token(guarded_client: AsyncClient):
    resp = await guarded_client.post("/", headers=auth_header("garbage"))

    assert resp.status_code == 401
    assert resp.json() == {"error": "Invalid or expired token"}
