"""MCP method handlers for JSON-RPC requests."""

import logging
from typing import Any

from pydantic import ValidationError

from vector_store_mcp.config.loader import get_settings
from vector_store_mcp.mcp.errors import (
    INTERNAL_ERROR,
    MCPError,
    make_error_data,
    map_local_failure,
)
from vector_store_mcp.mcp.executor import CredentialMissingError, ToolExecutor
from vector_store_mcp.mcp.models import (
    Capabilities,
    InitializeParams,
    InitializeResult,
    ServerInfo,
    SessionState,
    ToolCallParams,
    ToolsListResult,
)
from vector_store_mcp.mcp.registry import ToolRegistry
from vector_store_mcp.security.credentials import is_well_formed, redact

logger = logging.getLogger(__name__)


class MCPHandlers:
    """Handlers for MCP protocol methods. Owns the session state."""

    def __init__(
        self,
        registry: ToolRegistry,
        executor: ToolExecutor | None = None,
        session: SessionState | None = None,
    ):
        self.registry = registry
        self.executor = executor or ToolExecutor(registry)
        self.session = session or SessionState()
        self._methods = {
            "initialize": self.handle_initialize,
            "notifications/initialized": self.handle_initialized,
            "ping": self.handle_ping,
            "tools/list": self.handle_tools_list,
            "tools/call": self.handle_tools_call,
            # Method names used by some non-MCP clients
            "session.negotiate": self.handle_initialize,
            "capabilities.list": self.handle_tools_list,
            "capabilities.invoke": self.handle_tools_call,
        }

    async def handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle the initialize request."""
        settings = get_settings()
        try:
            init_params = InitializeParams(**params)
        except ValidationError as e:
            logger.warning(f"Invalid initialize params, using defaults: {e.error_count()} error(s)")
            init_params = None

        if init_params is not None:
            api_key = init_params.initializationOptions.get("apiKey")
            if isinstance(api_key, str) and api_key:
                self.session.credential = api_key
            logger.info(
                f"Initialize from {init_params.clientInfo.name} {init_params.clientInfo.version}"
            )

        if settings.credential_validation == "eager":
            await self._validate_credential()

        self.session.initialized = True

        result = InitializeResult(
            protocolVersion=settings.protocol_version,
            capabilities=Capabilities(),
            serverInfo=ServerInfo(
                name=settings.server_name,
                version=settings.server_version,
            ),
        )
        return result.model_dump()

    async def _validate_credential(self) -> None:
        try:
            credential = self.executor.resolve_credential(self.session)
        except CredentialMissingError as e:
            raise MCPError(map_local_failure("invalid_params"), str(e))
        if not is_well_formed(credential):
            raise MCPError(
                map_local_failure("invalid_params"), "Backend credential is not a valid API key"
            )

        result = await self.executor.get_client(credential).validate_credential()
        if not result.ok:
            raise MCPError(result.code or INTERNAL_ERROR, redact(result.message, credential))

    async def handle_initialized(self, params: dict[str, Any]) -> None:
        """Handle the notifications/initialized notification (no response)."""
        logger.info("Client confirmed initialization")
        return None

    async def handle_ping(self, params: dict[str, Any]) -> dict[str, Any]:
        return {}

    async def handle_tools_list(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle the tools/list request. Allowed before initialize."""
        tools = self.registry.list_tools()
        result = ToolsListResult(tools=tools)
        return result.model_dump()

    async def handle_tools_call(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle the tools/call request."""
        if not self.session.initialized:
            raise MCPError(
                map_local_failure("invalid_request"),
                "Server not initialized",
                "Call initialize first",
            )

        try:
            call_params = ToolCallParams(**params)
        except ValidationError as e:
            raise MCPError(
                map_local_failure("invalid_params"),
                f"Invalid tools/call params: {e.error_count()} error(s)",
            )

        logger.info(f"Calling tool: {call_params.name}")
        result = await self.executor.invoke(
            self.session, call_params.name, call_params.arguments
        )
        return result.model_dump()

    async def dispatch(
        self, method: str, params: dict[str, Any]
    ) -> tuple[Any | None, dict[str, Any] | None]:
        """
        Dispatch a method call to the appropriate handler.

        Returns (result, error) tuple. One will be None.
        """
        handler = self._methods.get(method)
        if handler is None:
            return None, make_error_data(
                map_local_failure("method_not_found"), f"Method not found: {method}"
            )

        try:
            result = await handler(params)
            return result, None
        except MCPError as e:
            return None, e.to_error_data()
        except Exception as e:
            logger.exception(f"Error handling method {method}")
            return None, make_error_data(
                INTERNAL_ERROR,
                redact(f"Error processing request: {e}", self.session.credential),
            )

    async def aclose(self) -> None:
        await self.executor.aclose()
