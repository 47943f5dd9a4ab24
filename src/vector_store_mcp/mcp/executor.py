"""Tool execution: argument validation, backend client lifecycle, result rendering."""

import asyncio
import json
import logging
from typing import Any, Callable

from vector_store_mcp.backend.client import VectorStoreClient
from vector_store_mcp.config.loader import get_settings
from vector_store_mcp.mcp.errors import INTERNAL_ERROR, error_message
from vector_store_mcp.mcp.models import BackendResult, SessionState, ToolCallResult
from vector_store_mcp.mcp.registry import ArgumentError, ToolRegistry
from vector_store_mcp.security.credentials import redact

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], VectorStoreClient]


class CredentialMissingError(Exception):
    """No backend credential is available for a tool call."""


class ToolExecutor:
    """Runs registered tools against a lazily created backend client.

    The client is built on first use and replaced whenever the credential
    changes, so the server can start and list tools without a credential.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        client_factory: ClientFactory | None = None,
    ):
        self.registry = registry
        self._client_factory = client_factory or VectorStoreClient
        self._client: VectorStoreClient | None = None
        self._client_credential: str | None = None
        self._retired: set[asyncio.Task] = set()

    def resolve_credential(self, session: SessionState) -> str:
        credential = session.credential or get_settings().openai_api_key
        if not credential:
            raise CredentialMissingError(
                "OPENAI_API_KEY is not configured. Set the environment variable "
                "or supply a key when initializing the session."
            )
        return credential

    def get_client(self, credential: str) -> VectorStoreClient:
        """Return the backend client for a credential, rebuilding it on change."""
        if self._client is None or self._client_credential != credential:
            old = self._client
            self._client = self._client_factory(credential)
            self._client_credential = credential
            logger.info("Created backend client")
            if old is not None:
                # In-flight calls on the old client may still be running
                task = asyncio.ensure_future(old.aclose())
                self._retired.add(task)
                task.add_done_callback(self._retired.discard)
        return self._client

    async def invoke(
        self, session: SessionState, name: str, arguments: dict[str, Any]
    ) -> ToolCallResult:
        """Call a tool by name. Failures come back as isError results, never raise."""
        tool = self.registry.get(name)
        if tool is None:
            return ToolCallResult.error(f"Error: Unknown tool: {name}")

        try:
            validated = tool.validate_arguments(arguments)
        except ArgumentError as e:
            return ToolCallResult.error(f"Error: {e}")

        try:
            credential = self.resolve_credential(session)
        except CredentialMissingError as e:
            return ToolCallResult.error(f"Error: {e}")

        try:
            client = self.get_client(credential)
            result = await tool.handler(client, validated)
        except Exception as e:
            logger.exception(f"Error executing tool {name}")
            message = redact(f"{error_message(INTERNAL_ERROR)}: {e}", credential)
            return ToolCallResult.error(f"Error: {message}")

        return self.render(result)

    @staticmethod
    def render(result: BackendResult) -> ToolCallResult:
        if result.ok:
            return ToolCallResult.text(json.dumps(result.payload, indent=2))
        return ToolCallResult.error(f"Error: {result.message}")

    async def aclose(self) -> None:
        if self._retired:
            await asyncio.gather(*self._retired, return_exceptions=True)
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            self._client_credential = None
