"""JSON-RPC 2.0 error codes, backend status mapping and error helpers."""

from typing import Any

# Standard JSON-RPC 2.0 error codes
PARSE_ERROR = -32700  # Invalid JSON was received
INVALID_REQUEST = -32600  # The JSON sent is not a valid Request object
METHOD_NOT_FOUND = -32601  # The method does not exist / is not available
INVALID_PARAMS = -32602  # Invalid method parameter(s)
INTERNAL_ERROR = -32603  # Internal JSON-RPC error

# Backend failure codes (server-defined, must be between -32000 and -32099)
UNAUTHORIZED = -32001  # Backend rejected the credential (HTTP 401)
FORBIDDEN = -32002  # Credential lacks access (HTTP 403)
NOT_FOUND = -32003  # Resource does not exist (HTTP 404)
RATE_LIMITED = -32004  # Backend rate limit hit (HTTP 429)

_STATUS_CODES = {
    401: UNAUTHORIZED,
    403: FORBIDDEN,
    404: NOT_FOUND,
    429: RATE_LIMITED,
}

_LOCAL_FAILURES = {
    "parse": PARSE_ERROR,
    "invalid_request": INVALID_REQUEST,
    "method_not_found": METHOD_NOT_FOUND,
    "invalid_params": INVALID_PARAMS,
}


def map_backend_status(status_code: int) -> int:
    """Map a backend HTTP status to an error code."""
    return _STATUS_CODES.get(status_code, INTERNAL_ERROR)


def map_local_failure(kind: str) -> int:
    """Map a local failure kind to an error code."""
    return _LOCAL_FAILURES.get(kind, INTERNAL_ERROR)


def error_message(code: int) -> str:
    """Get the standard message for an error code."""
    messages = {
        PARSE_ERROR: "Parse error",
        INVALID_REQUEST: "Invalid Request",
        METHOD_NOT_FOUND: "Method not found",
        INVALID_PARAMS: "Invalid params",
        INTERNAL_ERROR: "Internal error",
        UNAUTHORIZED: "Unauthorized",
        FORBIDDEN: "Forbidden",
        NOT_FOUND: "Not found",
        RATE_LIMITED: "Rate limited",
    }
    return messages.get(code, "Unknown error")


def make_error_data(code: int, message: str | None = None, data: Any = None) -> dict[str, Any]:
    """Create an error object for JSON-RPC response."""
    error: dict[str, Any] = {
        "code": code,
        "message": message or error_message(code),
    }
    if data is not None:
        error["data"] = data
    return error


class MCPError(Exception):
    """A failure reported to the client as a protocol-level error."""

    def __init__(self, code: int, message: str | None = None, data: Any = None):
        self.code = code
        self.message = message or error_message(code)
        self.data = data
        super().__init__(self.message)

    def to_error_data(self) -> dict[str, Any]:
        return make_error_data(self.code, self.message, self.data)
