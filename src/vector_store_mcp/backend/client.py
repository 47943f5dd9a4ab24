"""OpenAI vector store and file API client."""

import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import Any

import httpx

from vector_store_mcp.config.loader import get_settings
from vector_store_mcp.mcp.errors import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    map_backend_status,
)
from vector_store_mcp.mcp.models import BackendResult
from vector_store_mcp.security.credentials import redact
from vector_store_mcp.utils.http import create_http_client, http_retry

logger = logging.getLogger(__name__)


def _query(**params: Any) -> dict[str, Any]:
    """Drop unset (or zero) values so the backend defaults apply."""
    return {key: value for key, value in params.items() if value}


def _expires_after(days: int | None) -> dict[str, Any] | None:
    if not days:
        return None
    return {"anchor": "last_active_at", "days": days}


class VectorStoreClient:
    """Client for the OpenAI vector store and file endpoints.

    Every method returns a BackendResult; expected backend failures
    (HTTP errors, timeouts, connection errors) never raise.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_key = api_key
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self._http = create_http_client(
            timeout=timeout,
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "OpenAI-Beta": "assistants=v2",
            },
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def is_closed(self) -> bool:
        return self._http.is_closed

    @http_retry
    async def _send(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> httpx.Response:
        return await self._http.request(
            method, path, params=params or None, json=json, files=files, data=data
        )

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        files: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> BackendResult:
        """Perform one backend call and fold every outcome into a BackendResult."""
        try:
            response = await self._send(
                method, path, params=params, json=json, files=files, data=data
            )
        except httpx.TimeoutException:
            logger.warning(f"Backend timeout: {method} {path}")
            return BackendResult.failure(
                INTERNAL_ERROR, f"Backend request timed out: {method} {path}"
            )
        except httpx.HTTPError as e:
            message = redact(f"Network error: {e}", self.api_key)
            logger.warning(f"Backend network error: {method} {path}")
            return BackendResult.failure(INTERNAL_ERROR, message)

        if response.is_error:
            return self._failure_from_response(response)

        return BackendResult.success(self._decode(response))

    def _failure_from_response(self, response: httpx.Response) -> BackendResult:
        status = response.status_code
        message = f"OpenAI API error: {status} {response.reason_phrase}"
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                message = str(error["message"])
        logger.info(f"Backend returned {status} for {response.request.url.path}")
        return BackendResult.failure(
            map_backend_status(status), redact(message, self.api_key), status_code=status
        )

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            try:
                return response.json()
            except ValueError:
                pass
        return {"content": response.text}

    # =========================================================================
    # Vector stores
    # =========================================================================

    async def create_vector_store(
        self,
        name: str,
        expires_after_days: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> BackendResult:
        body: dict[str, Any] = {"name": name, "metadata": metadata or {}}
        expires_after = _expires_after(expires_after_days)
        if expires_after:
            body["expires_after"] = expires_after
        return await self.request("POST", "/vector_stores", json=body)

    async def list_vector_stores(
        self, limit: int | None = None, order: str | None = None
    ) -> BackendResult:
        return await self.request(
            "GET", "/vector_stores", params=_query(limit=limit, order=order)
        )

    async def get_vector_store(self, vector_store_id: str) -> BackendResult:
        return await self.request("GET", f"/vector_stores/{vector_store_id}")

    async def delete_vector_store(self, vector_store_id: str) -> BackendResult:
        return await self.request("DELETE", f"/vector_stores/{vector_store_id}")

    async def modify_vector_store(
        self,
        vector_store_id: str,
        name: str | None = None,
        expires_after_days: int | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> BackendResult:
        body: dict[str, Any] = {}
        if name:
            body["name"] = name
        if metadata:
            body["metadata"] = metadata
        expires_after = _expires_after(expires_after_days)
        if expires_after:
            body["expires_after"] = expires_after
        return await self.request("POST", f"/vector_stores/{vector_store_id}", json=body)

    # =========================================================================
    # Vector store files
    # =========================================================================

    async def add_file(self, vector_store_id: str, file_id: str) -> BackendResult:
        return await self.request(
            "POST", f"/vector_stores/{vector_store_id}/files", json={"file_id": file_id}
        )

    async def list_files(
        self,
        vector_store_id: str,
        limit: int | None = None,
        filter: str | None = None,
    ) -> BackendResult:
        return await self.request(
            "GET",
            f"/vector_stores/{vector_store_id}/files",
            params=_query(limit=limit, filter=filter),
        )

    async def get_file(self, vector_store_id: str, file_id: str) -> BackendResult:
        return await self.request(
            "GET", f"/vector_stores/{vector_store_id}/files/{file_id}"
        )

    async def get_file_content(self, vector_store_id: str, file_id: str) -> BackendResult:
        return await self.request(
            "GET", f"/vector_stores/{vector_store_id}/files/{file_id}/content"
        )

    async def update_file(
        self, vector_store_id: str, file_id: str, metadata: dict[str, Any]
    ) -> BackendResult:
        # The backend stores per-file metadata under "attributes"
        return await self.request(
            "POST",
            f"/vector_stores/{vector_store_id}/files/{file_id}",
            json={"attributes": metadata},
        )

    async def delete_file(self, vector_store_id: str, file_id: str) -> BackendResult:
        return await self.request(
            "DELETE", f"/vector_stores/{vector_store_id}/files/{file_id}"
        )

    # =========================================================================
    # File batches
    # =========================================================================

    async def create_file_batch(
        self, vector_store_id: str, file_ids: list[str]
    ) -> BackendResult:
        return await self.request(
            "POST",
            f"/vector_stores/{vector_store_id}/file_batches",
            json={"file_ids": file_ids},
        )

    async def get_file_batch(self, vector_store_id: str, batch_id: str) -> BackendResult:
        return await self.request(
            "GET", f"/vector_stores/{vector_store_id}/file_batches/{batch_id}"
        )

    async def cancel_file_batch(self, vector_store_id: str, batch_id: str) -> BackendResult:
        return await self.request(
            "POST", f"/vector_stores/{vector_store_id}/file_batches/{batch_id}/cancel"
        )

    async def list_file_batch_files(
        self,
        vector_store_id: str,
        batch_id: str,
        limit: int | None = None,
        filter: str | None = None,
    ) -> BackendResult:
        return await self.request(
            "GET",
            f"/vector_stores/{vector_store_id}/file_batches/{batch_id}/files",
            params=_query(limit=limit, filter=filter),
        )

    # =========================================================================
    # Standalone files and uploads
    # =========================================================================

    async def upload_file(
        self,
        file_path: str,
        purpose: str | None = None,
        filename: str | None = None,
    ) -> BackendResult:
        path = Path(file_path).expanduser()
        if not path.is_file():
            return BackendResult.failure(INVALID_PARAMS, f"File not found: {file_path}")

        name = filename or path.name
        mime_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        content = await asyncio.to_thread(path.read_bytes)
        return await self.request(
            "POST",
            "/files",
            data={"purpose": purpose or "assistants"},
            files={"file": (name, content, mime_type)},
        )

    async def list_uploaded_files(
        self,
        purpose: str | None = None,
        limit: int | None = None,
        order: str | None = None,
        after: str | None = None,
    ) -> BackendResult:
        return await self.request(
            "GET",
            "/files",
            params=_query(purpose=purpose, limit=limit, order=order, after=after),
        )

    async def get_uploaded_file(self, file_id: str) -> BackendResult:
        return await self.request("GET", f"/files/{file_id}")

    async def delete_uploaded_file(self, file_id: str) -> BackendResult:
        return await self.request("DELETE", f"/files/{file_id}")

    async def get_uploaded_file_content(self, file_id: str) -> BackendResult:
        return await self.request("GET", f"/files/{file_id}/content")

    async def create_upload(
        self,
        filename: str,
        bytes: int,
        mime_type: str,
        purpose: str | None = None,
    ) -> BackendResult:
        return await self.request(
            "POST",
            "/uploads",
            json={
                "filename": filename,
                "purpose": purpose or "assistants",
                "bytes": bytes,
                "mime_type": mime_type,
            },
        )

    # =========================================================================
    # Credential check
    # =========================================================================

    async def validate_credential(self) -> BackendResult:
        """Make a cheap authenticated call to confirm the backend accepts the key."""
        result = await self.request("GET", "/models")
        if result.ok:
            return BackendResult.success({"valid": True})
        return result
