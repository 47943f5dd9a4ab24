"""Tools for files attached to a vector store."""

from typing import Any

from vector_store_mcp.backend.client import VectorStoreClient
from vector_store_mcp.mcp.models import BackendResult
from vector_store_mcp.mcp.registry import ToolRegistry
from vector_store_mcp.tools.vector_stores.tools import VECTOR_STORE_ID

FILE_ID = {
    "type": "string",
    "description": "ID of the file (starts with 'file-')",
}

FILE_STATUS_FILTER = {
    "type": "string",
    "enum": ["in_progress", "completed", "failed", "cancelled"],
    "description": "Filter files by processing status",
}


async def add_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    return await client.add_file(arguments["vector_store_id"], arguments["file_id"])


async def list_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    return await client.list_files(
        arguments["vector_store_id"],
        limit=arguments.get("limit"),
        filter=arguments.get("filter"),
    )


async def get_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    return await client.get_file(arguments["vector_store_id"], arguments["file_id"])


async def content_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    return await client.get_file_content(arguments["vector_store_id"], arguments["file_id"])


async def update_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    return await client.update_file(
        arguments["vector_store_id"], arguments["file_id"], arguments["metadata"]
    )


async def delete_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    return await client.delete_file(arguments["vector_store_id"], arguments["file_id"])


def register_tools(registry: ToolRegistry) -> None:
    """Register vector store file tools with the registry."""

    registry.register(
        name="vector-store-file-add",
        description="Attach an already uploaded file to a vector store so it gets chunked and embedded.",
        input_schema={
            "type": "object",
            "properties": {
                "vector_store_id": VECTOR_STORE_ID,
                "file_id": FILE_ID,
            },
            "required": ["vector_store_id", "file_id"],
        },
        handler=add_handler,
    )

    registry.register(
        name="vector-store-file-list",
        description="List files in a vector store, optionally filtered by status.",
        input_schema={
            "type": "object",
            "properties": {
                "vector_store_id": VECTOR_STORE_ID,
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of files to return (default: 20)",
                },
                "filter": FILE_STATUS_FILTER,
            },
            "required": ["vector_store_id"],
        },
        handler=list_handler,
    )

    registry.register(
        name="vector-store-file-get",
        description="Get details of a specific file in a vector store.",
        input_schema={
            "type": "object",
            "properties": {
                "vector_store_id": VECTOR_STORE_ID,
                "file_id": FILE_ID,
            },
            "required": ["vector_store_id", "file_id"],
        },
        handler=get_handler,
    )

    registry.register(
        name="vector-store-file-content",
        description="Get the parsed content of a file in a vector store.",
        input_schema={
            "type": "object",
            "properties": {
                "vector_store_id": VECTOR_STORE_ID,
                "file_id": FILE_ID,
            },
            "required": ["vector_store_id", "file_id"],
        },
        handler=content_handler,
    )

    registry.register(
        name="vector-store-file-update",
        description="Update the metadata attributes of a file in a vector store.",
        input_schema={
            "type": "object",
            "properties": {
                "vector_store_id": VECTOR_STORE_ID,
                "file_id": FILE_ID,
                "metadata": {
                    "type": "object",
                    "description": "New metadata for the file",
                },
            },
            "required": ["vector_store_id", "file_id", "metadata"],
        },
        handler=update_handler,
    )

    registry.register(
        name="vector-store-file-delete",
        description="Remove a file from a vector store. The uploaded file itself is kept.",
        input_schema={
            "type": "object",
            "properties": {
                "vector_store_id": VECTOR_STORE_ID,
                "file_id": FILE_ID,
            },
            "required": ["vector_store_id", "file_id"],
        },
        handler=delete_handler,
    )
