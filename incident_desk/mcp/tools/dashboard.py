from mcp.types import ToolAnnotations
from pydantic import BaseModel, Field

from incident_desk.database import async_session
from incident_desk.mcp.auth import get_current_mcp_user
from incident_desk.mcp.server import mcp
from incident_desk.schemas.dashboard import GlobalDashboardStats, ScopedDashboardStats
from incident_desk.services import dashboard_service


class MyDashboardResult(BaseModel):
    summary: str = Field(description="Human-readable result message")
    data: ScopedDashboardStats | None = Field(description="Status breakdown, or null on error")


class DashboardSummaryResult(BaseModel):
    summary: str = Field(description="Human-readable result message")
    data: GlobalDashboardStats | None = Field(description="Dashboard statistics, or null on error")


@mcp.tool(
    description="Get status counts for the tickets you reported",
    annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False),
)
async def get_my_dashboard() -> MyDashboardResult:
    """Open/resolved/closed counts and percentages for the caller's own tickets."""
    try:
        async with async_session() as db:
            current_user = await get_current_mcp_user(db)
            stats = await dashboard_service.get_scoped_stats(db, current_user.user.id)
            return MyDashboardResult(
                summary=(
                    f"{stats.total_tickets} ticket(s): {stats.open_tickets} open, "
                    f"{stats.resolved_tickets} resolved, {stats.closed_tickets} closed, "
                    f"{stats.urgent_tickets} urgent"
                ),
                data=stats,
            )
    except ValueError as e:
        return MyDashboardResult(summary=f"Error: {e}", data=None)
    except Exception as e:
        return MyDashboardResult(summary=f"Unexpected error: {e}", data=None)


@mcp.tool(
    description="Get organisation-wide ticket statistics (service desk only)",
    annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False),
)
async def get_dashboard_summary() -> DashboardSummaryResult:
    """Counts by status, priority, category and assignee plus average resolution time."""
    try:
        async with async_session() as db:
            current_user = await get_current_mcp_user(db)
            if not current_user.user.is_privileged:
                raise ValueError("Service desk role required")
            stats = await dashboard_service.get_global_stats(db)
            return DashboardSummaryResult(
                summary=(
                    f"{stats.total_tickets} ticket(s), {stats.unassigned_tickets} unassigned, "
                    f"average resolution {stats.average_resolution_hours:.1f}h"
                ),
                data=stats,
            )
    except ValueError as e:
        return DashboardSummaryResult(summary=f"Error: {e}", data=None)
    except Exception as e:
        return DashboardSummaryResult(summary=f"Unexpected error: {e}", data=None)
