"""Backend adapter for the OpenAI vector store API."""

from vector_store_mcp.backend.client import VectorStoreClient

__all__ = ["VectorStoreClient"]
