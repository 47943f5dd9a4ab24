"""FastAPI HTTP bridge for the MCP server."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from vector_store_mcp.config.loader import get_settings
from vector_store_mcp.mcp.registry import load_configured_registry
from vector_store_mcp.mcp.transport_http import SESSION_HEADER, SessionManager
from vector_store_mcp.security.credentials import extract_bearer_token
from vector_store_mcp.utils.logging import setup_logging, set_request_id, get_logger

logger = logging.getLogger(__name__)

# Global session manager
_session_manager: SessionManager | None = None


def get_session_manager() -> SessionManager:
    """Get the global session manager."""
    global _session_manager
    if _session_manager is None:
        _session_manager = SessionManager(load_configured_registry())
    return _session_manager


def reset_session_manager() -> None:
    """Drop the global session manager (useful for testing)."""
    global _session_manager
    _session_manager = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    setup_logging()
    log = get_logger("startup")

    settings = get_settings()
    log.info(
        "Starting MCP HTTP bridge",
        server_name=settings.server_name,
        version=settings.server_version,
        credential_configured=settings.has_credential,
    )

    session_manager = get_session_manager()
    log.info("Tool registry ready", tool_count=session_manager.registry.tool_count)
    await session_manager.start_cleanup_task()

    yield

    log.info("Shutting down MCP HTTP bridge")
    await session_manager.shutdown()


app = FastAPI(
    title="OpenAI Vector Store MCP Server",
    description="MCP bridge for OpenAI vector store and file management",
    version=get_settings().server_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=[SESSION_HEADER],
)


# Request ID middleware
@app.middleware("http")
async def add_request_id_middleware(request: Request, call_next):
    """Add request ID to all requests."""
    request_id = request.headers.get("X-Request-ID") or set_request_id()
    set_request_id(request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# =============================================================================
# Health and Info Endpoints
# =============================================================================


@app.get("/health")
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict:
    """Root endpoint with server info."""
    settings = get_settings()
    session_manager = get_session_manager()

    return {
        "name": settings.server_name,
        "version": settings.server_version,
        "endpoints": {
            "health": "/health",
            "mcp": "/mcp",
            "mcp_with_key": "/mcp/{api_key}",
        },
        "tools_available": session_manager.registry.tool_count,
        "mcp_protocol_version": settings.protocol_version,
    }


# =============================================================================
# MCP Endpoints
# =============================================================================


async def _handle_mcp(request: Request, api_key: str | None) -> Response:
    session_manager = get_session_manager()
    session = session_manager.get_or_create(request.headers.get(SESSION_HEADER))

    credential = api_key or extract_bearer_token(request.headers.get("Authorization"))
    if credential:
        session.handlers.session.credential = credential

    body = await request.body()
    response = await session.processor.handle_message(body)

    headers = {SESSION_HEADER: session.session_id}
    if response is None:
        # Notification - no response needed
        return Response(status_code=202, headers=headers)

    return JSONResponse(content=response.model_dump(), headers=headers)


@app.post("/mcp")
async def mcp_endpoint(request: Request) -> Response:
    """
    Message endpoint for JSON-RPC requests.

    The backend credential comes from the Authorization header or the
    server environment.
    """
    return await _handle_mcp(request, None)


@app.post("/mcp/{api_key}")
async def mcp_key_endpoint(api_key: str, request: Request) -> Response:
    """Message endpoint with the backend credential in the URL path."""
    return await _handle_mcp(request, api_key)
