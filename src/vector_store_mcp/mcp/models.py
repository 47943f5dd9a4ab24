"""Pydantic models for MCP JSON-RPC 2.0 protocol."""

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, Field, StrictInt, StrictStr, model_validator


# =============================================================================
# JSON-RPC 2.0 Base Models
# =============================================================================


# Strict so that a boolean id is rejected instead of coerced to 1
RequestId = StrictInt | StrictStr


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request object."""

    jsonrpc: Literal["2.0"]
    id: RequestId | None = None  # None for notifications
    method: str
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_notification(self) -> bool:
        return self.id is None


class JsonRpcError(BaseModel):
    """JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any = None


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response object."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: RequestId | None = None
    result: Any = None
    error: JsonRpcError | None = None

    @model_validator(mode="after")
    def _result_or_error(self) -> "JsonRpcResponse":
        if self.error is not None and self.result is not None:
            raise ValueError("response carries both result and error")
        return self

    def model_dump(self, **kwargs: Any) -> dict[str, Any]:
        """Custom serialization: exactly one of result/error is emitted."""
        data: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            data["error"] = self.error.model_dump(exclude_none=True)
        else:
            data["result"] = self.result if self.result is not None else {}
        return data


# =============================================================================
# MCP Content Types
# =============================================================================


class TextContent(BaseModel):
    """Text content returned by tools."""

    type: Literal["text"] = "text"
    text: str


# =============================================================================
# MCP Tool Models
# =============================================================================


class Tool(BaseModel):
    """MCP tool definition."""

    name: str = Field(..., description="Tool name (lowercase with hyphens)")
    description: str = Field(..., description="Human-readable description")
    inputSchema: dict[str, Any] = Field(
        ..., description="JSON Schema for tool input"
    )


class ToolCallResult(BaseModel):
    """Result of a tool call. isError is only emitted for failures."""

    content: list[TextContent]
    isError: bool | None = None

    @classmethod
    def text(cls, text: str) -> "ToolCallResult":
        return cls(content=[TextContent(text=text)])

    @classmethod
    def error(cls, text: str) -> "ToolCallResult":
        return cls(content=[TextContent(text=text)], isError=True)

    def model_dump(self, **kwargs: Any) -> dict[str, Any]:
        kwargs.setdefault("exclude_none", True)
        return super().model_dump(**kwargs)


# =============================================================================
# MCP Protocol Models
# =============================================================================


class ClientInfo(BaseModel):
    """Client information sent during initialization."""

    name: str
    version: str


class ServerInfo(BaseModel):
    """Server information returned during initialization."""

    name: str
    version: str


class Capabilities(BaseModel):
    """Server capabilities."""

    tools: dict[str, Any] = Field(default_factory=lambda: {"listChanged": False})


class InitializeParams(BaseModel):
    """Parameters for initialize request."""

    protocolVersion: str
    capabilities: dict[str, Any] = Field(default_factory=dict)
    clientInfo: ClientInfo
    initializationOptions: dict[str, Any] = Field(default_factory=dict)


class InitializeResult(BaseModel):
    """Result of initialize request."""

    protocolVersion: str
    capabilities: Capabilities
    serverInfo: ServerInfo


class ToolsListResult(BaseModel):
    """Result of tools/list request."""

    tools: list[Tool]


class ToolCallParams(BaseModel):
    """Parameters for tools/call request."""

    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


# =============================================================================
# Session and backend results
# =============================================================================


@dataclass
class SessionState:
    """Per-connection protocol state, owned by the method handlers."""

    initialized: bool = False
    credential: str | None = None


@dataclass(frozen=True)
class BackendResult:
    """Outcome of a backend call: a payload, or a failure with an error code."""

    ok: bool
    payload: Any = None
    code: int | None = None
    message: str = ""
    status_code: int | None = None

    @classmethod
    def success(cls, payload: Any) -> "BackendResult":
        return cls(ok=True, payload=payload)

    @classmethod
    def failure(
        cls, code: int, message: str, status_code: int | None = None
    ) -> "BackendResult":
        return cls(ok=False, code=code, message=message, status_code=status_code)
