"""HTTP bridge sessions for MCP.

Each POST carries one JSON-RPC message. Protocol state lives in a session
keyed by the Mcp-Session-Id header, so initialize and later tool calls from
the same client share a SessionState.
"""

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from vector_store_mcp.mcp.executor import ClientFactory, ToolExecutor
from vector_store_mcp.mcp.handlers import MCPHandlers
from vector_store_mcp.mcp.jsonrpc import JsonRpcProcessor
from vector_store_mcp.mcp.registry import ToolRegistry

logger = logging.getLogger(__name__)

SESSION_HEADER = "Mcp-Session-Id"

# Session timeout (30 minutes)
SESSION_TIMEOUT = timedelta(minutes=30)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Session:
    """An MCP session over the HTTP bridge."""

    def __init__(
        self,
        session_id: str,
        registry: ToolRegistry,
        client_factory: ClientFactory | None = None,
    ):
        self.session_id = session_id
        self.created_at = _now()
        self.last_activity = _now()
        self.handlers = MCPHandlers(registry, ToolExecutor(registry, client_factory))
        self.processor = JsonRpcProcessor(self.handlers)

    def touch(self) -> None:
        """Update last activity timestamp."""
        self.last_activity = _now()

    def is_expired(self) -> bool:
        """Check if the session has expired."""
        return _now() - self.last_activity > SESSION_TIMEOUT

    async def close(self) -> None:
        await self.handlers.aclose()


class SessionManager:
    """Manages MCP sessions for the HTTP bridge."""

    def __init__(self, registry: ToolRegistry, client_factory: ClientFactory | None = None):
        self.registry = registry
        self.client_factory = client_factory
        self._sessions: dict[str, Session] = {}
        self._cleanup_task: asyncio.Task | None = None

    def create_session(self) -> Session:
        """Create a new session."""
        session_id = uuid.uuid4().hex
        session = Session(session_id, self.registry, self.client_factory)
        self._sessions[session_id] = session
        logger.info(f"Created session: {session_id}")
        return session

    def get_session(self, session_id: str | None) -> Session | None:
        """Get a live session by ID."""
        if not session_id:
            return None
        session = self._sessions.get(session_id)
        if session is None or session.is_expired():
            return None
        session.touch()
        return session

    def get_or_create(self, session_id: str | None) -> Session:
        return self.get_session(session_id) or self.create_session()

    async def remove_session(self, session_id: str) -> None:
        """Remove a session and release its backend client."""
        session = self._sessions.pop(session_id, None)
        if session:
            await session.close()
            logger.info(f"Removed session: {session_id}")

    async def cleanup_expired(self) -> None:
        """Remove expired sessions."""
        expired = [
            sid for sid, session in self._sessions.items() if session.is_expired()
        ]
        for sid in expired:
            await self.remove_session(sid)
        if expired:
            logger.info(f"Cleaned up {len(expired)} expired sessions")

    async def start_cleanup_task(self) -> None:
        """Start background task to clean up expired sessions."""
        async def cleanup_loop():
            while True:
                await asyncio.sleep(60)  # Check every minute
                await self.cleanup_expired()

        self._cleanup_task = asyncio.create_task(cleanup_loop())

    async def shutdown(self) -> None:
        """Stop the cleanup task and close every session."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            self._cleanup_task = None
        for sid in list(self._sessions):
            await self.remove_session(sid)

    @property
    def session_count(self) -> int:
        """Return the number of active sessions."""
        return len(self._sessions)
