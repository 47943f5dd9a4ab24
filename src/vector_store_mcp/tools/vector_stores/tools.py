"""Vector store tools: create, list, get, delete, modify."""

from typing import Any

from vector_store_mcp.backend.client import VectorStoreClient
from vector_store_mcp.mcp.models import BackendResult
from vector_store_mcp.mcp.registry import ToolRegistry

VECTOR_STORE_ID = {
    "type": "string",
    "description": "ID of the vector store (starts with 'vs_')",
}


async def create_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    """Handle vector-store-create tool call."""
    return await client.create_vector_store(
        name=arguments["name"],
        expires_after_days=arguments.get("expires_after_days"),
        metadata=arguments.get("metadata"),
    )


async def list_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    """Handle vector-store-list tool call."""
    return await client.list_vector_stores(
        limit=arguments.get("limit"),
        order=arguments.get("order"),
    )


async def get_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    """Handle vector-store-get tool call."""
    return await client.get_vector_store(arguments["vector_store_id"])


async def delete_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    """Handle vector-store-delete tool call."""
    return await client.delete_vector_store(arguments["vector_store_id"])


async def modify_handler(client: VectorStoreClient, arguments: dict[str, Any]) -> BackendResult:
    """Handle vector-store-modify tool call."""
    return await client.modify_vector_store(
        arguments["vector_store_id"],
        name=arguments.get("name"),
        expires_after_days=arguments.get("expires_after_days"),
        metadata=arguments.get("metadata"),
    )


def register_tools(registry: ToolRegistry) -> None:
    """Register vector store tools with the registry."""

    registry.register(
        name="vector-store-create",
        description="Create a new vector store for storing and searching file embeddings.",
        input_schema={
            "type": "object",
            "properties": {
                "name": {
                    "type": "string",
                    "description": "Name of the vector store",
                },
                "expires_after_days": {
                    "type": "integer",
                    "description": "Number of days of inactivity after which the vector store expires (optional)",
                },
                "metadata": {
                    "type": "object",
                    "description": "Additional metadata for the vector store (optional)",
                },
            },
            "required": ["name"],
        },
        handler=create_handler,
    )

    registry.register(
        name="vector-store-list",
        description="List vector stores, newest first unless another order is given.",
        input_schema={
            "type": "object",
            "properties": {
                "limit": {
                    "type": "integer",
                    "description": "Maximum number of vector stores to return (default: 20)",
                },
                "order": {
                    "type": "string",
                    "enum": ["asc", "desc"],
                    "description": "Sort order by created_at timestamp",
                },
            },
            "required": [],
        },
        handler=list_handler,
    )

    registry.register(
        name="vector-store-get",
        description="Get details of a specific vector store, including file counts and status.",
        input_schema={
            "type": "object",
            "properties": {"vector_store_id": VECTOR_STORE_ID},
            "required": ["vector_store_id"],
        },
        handler=get_handler,
    )

    registry.register(
        name="vector-store-delete",
        description="Delete a vector store. Files stay uploaded and can be reused.",
        input_schema={
            "type": "object",
            "properties": {"vector_store_id": VECTOR_STORE_ID},
            "required": ["vector_store_id"],
        },
        handler=delete_handler,
    )

    registry.register(
        name="vector-store-modify",
        description="Rename a vector store or change its expiration and metadata.",
        input_schema={
            "type": "object",
            "properties": {
                "vector_store_id": VECTOR_STORE_ID,
                "name": {
                    "type": "string",
                    "description": "New name for the vector store (optional)",
                },
                "expires_after_days": {
                    "type": "integer",
                    "description": "Number of days of inactivity after which the vector store expires (optional)",
                },
                "metadata": {
                    "type": "object",
                    "description": "Replacement metadata for the vector store (optional)",
                },
            },
            "required": ["vector_store_id"],
        },
        handler=modify_handler,
    )
