"""Utility modules: logging, HTTP client."""

from vector_store_mcp.utils.logging import setup_logging, get_logger
from vector_store_mcp.utils.http import create_http_client

__all__ = [
    "setup_logging",
    "get_logger",
    "create_http_client",
]
