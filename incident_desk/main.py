import contextlib
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from incident_desk.api.routes import auth, dashboard, search
from incident_desk.config import settings
from incident_desk.mcp.auth import McpAuthMiddleware
from incident_desk.mcp.server import mcp
from incident_desk.mcp.tools import dashboard as mcp_dashboard  # noqa: F401
from incident_desk.mcp.tools import search as mcp_search  # noqa: F401

logger = logging.getLogger("incident_desk")


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    async with contextlib.AsyncExitStack() as stack:
        if settings.jwt_secret == "change-me-in-production":
            logger.warning(
                "JWT_SECRET is set to the default value. "
                "Set a strong secret in your .env file."
            )
        await stack.enter_async_context(mcp.session_manager.run())
        yield


def create_app() -> FastAPI:
    logger.setLevel(settings.log_level.upper())

    app = FastAPI(title="Incident Desk", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/v1/health")
    async def health_check():
        return {"status": "ok"}

    app.include_router(auth.router, prefix="/api/v1/auth", tags=["auth"])
    app.include_router(search.router, prefix="/api/v1/search", tags=["search"])
    app.include_router(dashboard.router, prefix="/api/v1/dashboard", tags=["dashboard"])

    app.mount(settings.mcp_path, McpAuthMiddleware(mcp.streamable_http_app()))

    return app


app = create_app()
