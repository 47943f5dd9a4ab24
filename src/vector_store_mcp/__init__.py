"""MCP server for OpenAI vector store and file management."""

__version__ = "1.2.0"
