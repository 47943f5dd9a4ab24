"""MCP (Model Context Protocol) implementation with JSON-RPC 2.0."""

from vector_store_mcp.mcp.models import (
    JsonRpcRequest,
    JsonRpcResponse,
    JsonRpcError,
    Tool,
    TextContent,
    ToolCallResult,
    SessionState,
    BackendResult,
)
from vector_store_mcp.mcp.registry import ToolRegistry
from vector_store_mcp.mcp.errors import (
    PARSE_ERROR,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    INVALID_PARAMS,
    INTERNAL_ERROR,
    UNAUTHORIZED,
    FORBIDDEN,
    NOT_FOUND,
    RATE_LIMITED,
    MCPError,
    map_backend_status,
    map_local_failure,
)

__all__ = [
    "JsonRpcRequest",
    "JsonRpcResponse",
    "JsonRpcError",
    "Tool",
    "TextContent",
    "ToolCallResult",
    "SessionState",
    "BackendResult",
    "ToolRegistry",
    "PARSE_ERROR",
    "INVALID_REQUEST",
    "METHOD_NOT_FOUND",
    "INVALID_PARAMS",
    "INTERNAL_ERROR",
    "UNAUTHORIZED",
    "FORBIDDEN",
    "NOT_FOUND",
    "RATE_LIMITED",
    "MCPError",
    "map_backend_status",
    "map_local_failure",
]
