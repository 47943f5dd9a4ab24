"""JSON-RPC 2.0 message processing."""

import json
import logging
from typing import Any

from pydantic import ValidationError

from vector_store_mcp.mcp.errors import INTERNAL_ERROR, make_error_data, map_local_failure
from vector_store_mcp.mcp.handlers import MCPHandlers
from vector_store_mcp.mcp.models import JsonRpcError, JsonRpcRequest, JsonRpcResponse

logger = logging.getLogger(__name__)


def _local_error(
    kind: str, message: str, request_id: int | str | None = None
) -> JsonRpcResponse:
    """Build the response for a message rejected before dispatch."""
    return JsonRpcResponse(
        id=request_id,
        error=JsonRpcError(**make_error_data(map_local_failure(kind), message)),
    )


def _usable_id(data: Any) -> int | str | None:
    """Pull a correlatable id out of an envelope that failed validation."""
    if isinstance(data, dict):
        request_id = data.get("id")
        if isinstance(request_id, (int, str)) and not isinstance(request_id, bool):
            return request_id
    return None


def _describe(error: ValidationError) -> str:
    problems = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "message"
        problems.append(f"{location}: {item['msg']}")
    return "; ".join(problems)


class JsonRpcProcessor:
    """Process JSON-RPC 2.0 messages."""

    def __init__(self, handlers: MCPHandlers):
        self.handlers = handlers

    def parse_request(
        self, raw_data: str | bytes
    ) -> tuple[JsonRpcRequest | None, JsonRpcResponse | None]:
        """
        Parse a JSON-RPC request from raw data.

        Returns (request, error_response) tuple. One will be None.
        """
        try:
            if isinstance(raw_data, bytes):
                raw_data = raw_data.decode("utf-8")
            data = json.loads(raw_data)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            # Parse errors don't have a usable request id
            return None, _local_error("parse", f"Parse error: {e}")
        except RecursionError:
            return None, _local_error("parse", "Parse error: message is nested too deeply")

        if not isinstance(data, dict):
            return None, _local_error(
                "invalid_request", "Invalid Request: expected a JSON object"
            )

        try:
            return JsonRpcRequest.model_validate(data), None
        except ValidationError as e:
            return None, _local_error(
                "invalid_request", f"Invalid Request: {_describe(e)}", _usable_id(data)
            )

    async def process_request(
        self, request: JsonRpcRequest
    ) -> JsonRpcResponse | None:
        """
        Process a validated JSON-RPC request.

        Returns None for notifications (requests without id).
        """
        result, error = await self.handlers.dispatch(request.method, request.params)

        # Notifications don't get responses
        if request.is_notification:
            if error is not None:
                logger.info(f"Notification {request.method} failed: {error['message']}")
            return None

        if error is not None:
            return JsonRpcResponse(
                id=request.id,
                error=JsonRpcError(**error),
            )
        return JsonRpcResponse(
            id=request.id,
            result=result,
        )

    async def handle_message(self, raw_data: str | bytes) -> JsonRpcResponse | None:
        """
        Handle a raw JSON-RPC message end-to-end.

        Returns a response or None for notifications. Never raises for
        anything a client sends.
        """
        request, error_response = self.parse_request(raw_data)
        if error_response is not None:
            return error_response

        try:
            return await self.process_request(request)  # type: ignore[arg-type]
        except Exception:
            logger.exception("Unhandled error processing request")
            if request is None or request.is_notification:
                return None
            return JsonRpcResponse(
                id=request.id,
                error=JsonRpcError(**make_error_data(INTERNAL_ERROR)),
            )

    @staticmethod
    def internal_error(message: str | None = None) -> JsonRpcResponse:
        """Build the id-less InternalError response used for stray failures."""
        return JsonRpcResponse(
            id=None,
            error=JsonRpcError(**make_error_data(INTERNAL_ERROR, message)),
        )
