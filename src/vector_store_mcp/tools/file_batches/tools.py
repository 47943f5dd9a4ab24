"""File batch tools for adding many files to a vector store at once."""

from typing import Any

from vector_store_mcp.backend.client import VectorStoreClient
from vector_store_mcp.mcp.models import BackendResult
from vector_store_mcp.mcp.registry import ToolRegistry
from vector_store_mcp.tools.vector_store_files.tools import FILE_STATUS_FILTER
from vector_store_mcp.tools.vector_stores.tools import VECTOR_STORE_ID

BATCH_ID = {
    "type": "string",
    "description": "ID of the file batch (starts with 'vsfb_')",
}


async def create_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    return await client.create_file_batch(arguments["vector_store_id"], arguments["file_ids"])


async def get_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    return await client.get_file_batch(arguments["vector_store_id"], arguments["batch_id"])


async def cancel_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    return await client.cancel_file_batch(arguments["vector_store_id"], arguments["batch_id"])


async def files_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    return await client.list_file_batch_files(
        arguments["vector_store_id"],
        arguments["batch_id"],
        limit=arguments.get("limit"),
        filter=arguments.get("filter"),
    )


def register_tools(registry: ToolRegistry) -> None:
    """Register file batch tools with the registry."""

    registry.register(
        name="vector-store-file-batch-create",
        description="Add several uploaded files to a vector store in one batch.",
        input_schema={
            "type": "object",
            "properties": {
                "vector_store_id": VECTOR_STORE_ID,
                "file_ids": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Array of file IDs to add to the batch",
                },
            },
            "required": ["vector_store_id", "file_ids"],
        },
        handler=create_handler,
    )

    registry.register(
        name="vector-store-file-batch-get",
        description="Get the status and file counts of a file batch.",
        input_schema={
            "type": "object",
            "properties": {
                "vector_store_id": VECTOR_STORE_ID,
                "batch_id": BATCH_ID,
            },
            "required": ["vector_store_id", "batch_id"],
        },
        handler=get_handler,
    )

    registry.register(
        name="vector-store-file-batch-cancel",
        description="Cancel a file batch that is still in progress.",
        input_schema={
            "type": "object",
            "properties": {
                "vector_store_id": VECTOR_STORE_ID,
                "batch_id": BATCH_ID,
            },
            "required": ["vector_store_id", "batch_id"],
        },
        handler=cancel_handler,
    )

    registry.register(
        name="vector-store-file-batch-files",
        description="List the files in a file batch, optionally filtered by status.",
        input_schema={
            "type": "object",
            "properties": {
                "vector_store_id": VECTOR_STORE_ID,
                "batch_id": BATCH_ID,
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of files to return (default: 20)",
                },
                "filter": FILE_STATUS_FILTER,
            },
            "required": ["vector_store_id", "batch_id"],
        },
        handler=files_handler,
    )
