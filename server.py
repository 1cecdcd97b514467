"""FastMCP entry for the NCHU iLearning login and assignment tools."""
import asyncio
import os
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastmcp import FastMCP
from fastmcp.server.middleware import Middleware, MiddlewareContext

from ilearning.config import LOG_DIR, MCP_SERVER_NAME
from ilearning.errors import LMSError, error_payload
from ilearning.schemas.assignment import RefreshState
from ilearning.schemas.login import LoginResponse
from ilearning.services.assignment_service import AssignmentService
from ilearning.services.login_service import LoginService
from ilearning.utils.logger import configure_logging, logger


# =============================================================================
# Parameter Filter Middleware
# =============================================================================

# Arguments each tool accepts; anything else sent by an agent is dropped.
TOOL_ALLOWED_PARAMS = {
    "login": {"account", "password", "remember"},
    "login_with_saved_credentials": set(),
    "save_credentials": {"account", "password"},
    "delete_credentials": set(),
    "get_dashboard_last_event": set(),
    "preview_captcha": set(),
    "refresh_assignments": {"force"},
}


class ParameterFilterMiddleware(Middleware):
    """Strip agent metadata (sessionId, toolCallId, ...) before FastMCP validates arguments."""

    async def on_call_tool(self, context: MiddlewareContext, call_next):
        tool_name = context.message.name
        allowed_params = TOOL_ALLOWED_PARAMS.get(tool_name)

        if context.message.arguments is None:
            context.message.arguments = {}

        if allowed_params is not None:
            original_args = dict(context.message.arguments)
            filtered_args = {
                key: value
                for key, value in original_args.items()
                if key in allowed_params and value is not None
            }
            removed_keys = set(original_args) - set(filtered_args)
            if removed_keys:
                logger.debug(
                    "ParameterFilterMiddleware: Tool '{}' - removed params: {}",
                    tool_name, removed_keys
                )
            context.message.arguments = filtered_args

        return await call_next(context)


# =============================================================================
# Service Construction
# =============================================================================

@dataclass
class Services:
    login_service: LoginService
    assignment_service: AssignmentService
    refresh_state: RefreshState = field(default_factory=RefreshState)
    # Guards the read-refresh-write of refresh_state
    refresh_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def aclose(self) -> None:
        await self.login_service.aclose()


def build_services() -> Services:
    login_service = LoginService()
    return Services(
        login_service=login_service,
        assignment_service=AssignmentService(login_service),
    )


async def _guarded(label: str, operation: Callable[[], Awaitable[dict]]) -> dict:
    try:
        return await operation()
    except LMSError as exc:
        logger.warning("{} failed: {} ({})", label, exc.message, exc.kind)
        return error_payload(exc)


# =============================================================================
# Tool Handlers
# =============================================================================

async def handle_login(services: Services, account: str, password: str, remember: bool = False) -> dict:
    login_service = services.login_service

    async def operation() -> dict:
        outcome = await login_service.login(account, password)
        if outcome.success and remember:
            login_service.save_credentials(account, password)
        return LoginResponse.from_outcome(outcome).model_dump()

    return await _guarded("login", operation)


async def handle_login_with_saved_credentials(services: Services) -> dict:
    async def operation() -> dict:
        outcome = await services.login_service.login_with_saved_credentials()
        return LoginResponse.from_outcome(outcome).model_dump()

    return await _guarded("login_with_saved_credentials", operation)


async def handle_dashboard(services: Services) -> dict:
    async def operation() -> dict:
        result = await services.login_service.get_dashboard_last_event()
        return result.model_dump()

    return await _guarded("get_dashboard_last_event", operation)


async def handle_preview_captcha(services: Services) -> dict:
    async def operation() -> dict:
        preview = await services.login_service.preview_captcha()
        return {"success": True, **preview.model_dump(mode="json")}

    return await _guarded("preview_captcha", operation)


async def run_refresh(services: Services, force: bool = False) -> dict:
    async with services.refresh_lock:
        state = RefreshState() if force else services.refresh_state
        result = await services.assignment_service.refresh(state)
        services.refresh_state = result.state
    return result.model_dump(mode="json")


# =============================================================================
# MCP Tools
# =============================================================================

def create_mcp(services: Services) -> FastMCP:
    mcp = FastMCP(MCP_SERVER_NAME)
    mcp.add_middleware(ParameterFilterMiddleware())

    @mcp.tool()
    async def login(account: str, password: str, remember: bool = False) -> dict:
        """Log in to iLearning; optionally store the credentials when the login succeeds."""
        logger.info("login called account={}", account)
        return await handle_login(services, account, password, remember)

    @mcp.tool()
    async def login_with_saved_credentials() -> dict:
        """Log in to iLearning with the stored account."""
        logger.info("login_with_saved_credentials called")
        return await handle_login_with_saved_credentials(services)

    @mcp.tool()
    async def save_credentials(account: str, password: str) -> dict:
        """Store the iLearning account used by the saved-credential tools."""
        services.login_service.save_credentials(account, password)
        return {"success": True, "message": "帳號密碼已儲存"}

    @mcp.tool()
    async def delete_credentials() -> dict:
        """Forget the stored iLearning account."""
        services.login_service.delete_credentials()
        return {"success": True, "message": "帳號密碼已刪除"}

    @mcp.tool()
    async def get_dashboard_last_event() -> dict:
        """Fetch the recent events table of the dashboard (requires a prior login)."""
        logger.info("get_dashboard_last_event called")
        return await handle_dashboard(services)

    @mcp.tool()
    async def preview_captcha() -> dict:
        """Fetch a login captcha and show the code the solver reads from it."""
        return await handle_preview_captcha(services)

    @mcp.tool()
    async def refresh_assignments(force: bool = False) -> dict:
        """
        Log in with the stored account and return the latest assignments.

        Calls within five minutes of the last successful refresh are skipped unless ``force`` is set.
        """
        logger.info("refresh_assignments called force={}", force)
        return await run_refresh(services, force=force)

    return mcp


async def serve_stdio(services: Services, mcp: FastMCP) -> None:
    try:
        await mcp.run_async(transport="stdio")
    finally:
        await services.aclose()


# =============================================================================
# REST API Layer (FastAPI with MCP mounted)
# =============================================================================

def create_app(services: Services, mcp: FastMCP) -> FastAPI:
    mcp_app = mcp.http_app(path="/mcp")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            async with mcp_app.lifespan(app):
                yield
        finally:
            await services.aclose()

    app = FastAPI(
        title="NCHU iLearning MCP Server",
        description="MCP server with REST API for assignment refresh",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    async def health_check():
        return {"status": "ok", "service": "NCHU iLearning MCP REST API"}

    @app.post("/api/refresh")
    async def rest_refresh(force: bool = False):
        logger.info("REST API: refresh called force={}", force)
        return await run_refresh(services, force=force)

    # Mounted last so the /api routes above take precedence.
    app.mount("/", mcp_app)
    return app


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    configure_logging()
    logger.info("Logging initialized at {}", LOG_DIR.resolve())

    services = build_services()
    mcp = create_mcp(services)

    transport = os.getenv("FASTMCP_TRANSPORT", "stdio")
    host = os.getenv("FASTMCP_HOST", "0.0.0.0")
    port = int(os.getenv("FASTMCP_PORT", "9431"))

    if transport == "stdio":
        asyncio.run(serve_stdio(services, mcp))
    else:
        logger.info("Starting combined FastAPI + MCP server on port {}", port)
        logger.info("  - GET  http://{}:{}/api/health", host, port)
        logger.info("  - POST http://{}:{}/api/refresh", host, port)
        logger.info("  - MCP  http://{}:{}/mcp", host, port)
        uvicorn.run(create_app(services, mcp), host=host, port=port, log_level="info")
