"""Standalone file tools: upload, list, get, delete, content, multipart uploads."""

from typing import Any

from vector_store_mcp.backend.client import VectorStoreClient
from vector_store_mcp.mcp.models import BackendResult
from vector_store_mcp.mcp.registry import ToolRegistry

PURPOSE = {
    "type": "string",
    "enum": ["assistants", "vision", "batch"],
    "description": "Purpose of the file. Use 'assistants' for vector stores.",
}

FILE_ID = {
    "type": "string",
    "description": "OpenAI file ID (starts with 'file-')",
}


async def upload_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    """Handle file-upload tool call."""
    return await client.upload_file(
        arguments["file_path"],
        purpose=arguments.get("purpose"),
        filename=arguments.get("filename"),
    )


async def list_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    """Handle file-list tool call."""
    return await client.list_uploaded_files(
        purpose=arguments.get("purpose"),
        limit=arguments.get("limit"),
        order=arguments.get("order"),
        after=arguments.get("after"),
    )


async def get_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    return await client.get_uploaded_file(arguments["file_id"])


async def delete_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    return await client.delete_uploaded_file(arguments["file_id"])


async def content_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    return await client.get_uploaded_file_content(arguments["file_id"])


async def upload_create_handler(
    client: VectorStoreClient, arguments: dict[str, Any]
) -> BackendResult:
    """Handle upload-create tool call."""
    return await client.create_upload(
        filename=arguments["filename"],
        bytes=arguments["bytes"],
        mime_type=arguments["mime_type"],
        purpose=arguments.get("purpose"),
    )


def register_tools(registry: ToolRegistry) -> None:
    """Register standalone file tools with the registry."""

    registry.register(
        name="file-upload",
        description="Upload a local file so it can be added to vector stores.",
        input_schema={
            "type": "object",
            "properties": {
                "file_path": {
                    "type": "string",
                    "description": "Path to the local file to upload (e.g. './documents/manual.pdf')",
                },
                "purpose": PURPOSE,
                "filename": {
                    "type": "string",
                    "description": "Custom filename for the upload (defaults to the original name)",
                },
            },
            "required": ["file_path"],
        },
        handler=upload_handler,
    )

    registry.register(
        name="file-list",
        description="List uploaded files, optionally filtered by purpose.",
        input_schema={
            "type": "object",
            "properties": {
                "purpose": PURPOSE,
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of files to return (1-10000, default: 20)",
                },
                "order": {
                    "type": "string",
                    "enum": ["asc", "desc"],
                    "description": "Sort order by created_at",
                },
                "after": {
                    "type": "string",
                    "description": "File ID to start listing after (for pagination)",
                },
            },
            "required": [],
        },
        handler=list_handler,
    )

    registry.register(
        name="file-get",
        description="Get details about an uploaded file.",
        input_schema={
            "type": "object",
            "properties": {"file_id": FILE_ID},
            "required": ["file_id"],
        },
        handler=get_handler,
    )

    registry.register(
        name="file-delete",
        description="Permanently delete an uploaded file. This cannot be undone.",
        input_schema={
            "type": "object",
            "properties": {"file_id": FILE_ID},
            "required": ["file_id"],
        },
        handler=delete_handler,
    )

    registry.register(
        name="file-content",
        description="Download the content of an uploaded file.",
        input_schema={
            "type": "object",
            "properties": {"file_id": FILE_ID},
            "required": ["file_id"],
        },
        handler=content_handler,
    )

    registry.register(
        name="upload-create",
        description="Start a multipart upload for a large file (over 25 MB).",
        input_schema={
            "type": "object",
            "properties": {
                "filename": {
                    "type": "string",
                    "description": "Name of the file to upload",
                },
                "purpose": PURPOSE,
                "bytes": {
                    "type": "integer",
                    "description": "Total size of the file in bytes",
                },
                "mime_type": {
                    "type": "string",
                    "description": "MIME type of the file (e.g. 'application/pdf')",
                },
            },
            "required": ["filename", "bytes", "mime_type"],
        },
        handler=upload_create_handler,
    )
