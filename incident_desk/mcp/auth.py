"""MCP transport-level authentication via ASGI middleware + contextvars.

Validates the ``Authorization: Bearer`` access token at the ASGI layer before
requests reach the MCP framework, and stores the caller's identity in a
contextvar so tools can scope their queries without taking credentials as
tool parameters.
"""

from __future__ import annotations

import json
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import TYPE_CHECKING

import jwt

from incident_desk.services import auth_service

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from incident_desk.api.dependencies import CurrentUser


@dataclass(frozen=True)
class McpAuthInfo:
    """Lightweight auth identity safe to store in a contextvar.

    Contains only scalar fields -- no SQLAlchemy models -- so it can
    safely cross async-session boundaries.
    """

    user_id: uuid.UUID


mcp_auth_var: ContextVar[McpAuthInfo | None] = ContextVar("mcp_auth_var", default=None)


def authenticate_bearer(authorization: str) -> McpAuthInfo:
    """Validate an ``Authorization`` header value.

    Raises:
        ValueError: If the header is not a bearer token or the token is
            invalid or expired.
    """
    if not authorization.startswith("Bearer "):
        raise ValueError("Expected a Bearer token")
    try:
        user_id = auth_service.user_id_from_access_token(authorization[7:])
    except jwt.InvalidTokenError as exc:
        raise ValueError("Invalid or expired token") from exc
    return McpAuthInfo(user_id=user_id)


async def get_current_mcp_user(db: AsyncSession) -> CurrentUser:
    """Build a ``CurrentUser`` from the contextvar set by the middleware.

    Raises:
        ValueError: If the request was unauthenticated or the user is
            missing or inactive.
    """
    from incident_desk.api.dependencies import CurrentUser  # avoid circular import at module level

    auth_info = mcp_auth_var.get()
    if auth_info is None:
        raise ValueError("Authentication required -- provide an Authorization: Bearer header")

    user = await auth_service.get_active_user(db, auth_info.user_id)
    if not user:
        raise ValueError("Authenticated user not found or inactive")

    return CurrentUser(user=user)


class McpAuthMiddleware:
    """ASGI middleware that authenticates MCP requests via bearer token.

    - Non-HTTP scopes: passed through unchanged.
    - HTTP with a valid token: contextvar set, request forwarded.
    - HTTP with an invalid token: HTTP 401 JSON response returned.
    - HTTP without ``Authorization``: passed through (allows tool discovery).
    """

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        token = mcp_auth_var.set(None)
        try:
            authorization = None
            for header_name, header_value in scope.get("headers", []):
                if header_name == b"authorization":
                    authorization = header_value.decode("utf-8")
                    break

            if authorization:
                try:
                    mcp_auth_var.set(authenticate_bearer(authorization))
                except ValueError as exc:
                    await self._send_401(send, str(exc))
                    return

            await self.app(scope, receive, send)
        finally:
            mcp_auth_var.reset(token)

    @staticmethod
    async def _send_401(send, detail: str) -> None:
        """Send an HTTP 401 JSON error response."""
        body = json.dumps({"error": detail}).encode("utf-8")
        await send(
            {
                "type": "http.response.start",
                "status": 401,
                "headers": [
                    [b"content-type", b"application/json"],
                    [b"content-length", str(len(body)).encode("utf-8")],
                ],
            }
        )
        await send({"type": "http.response.body", "body": body})
