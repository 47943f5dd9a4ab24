"""Command line entrypoint."""

import asyncio
import os

import click

from vector_store_mcp import __version__


@click.command()
@click.version_option(version=__version__, prog_name="vector-store-mcp")
@click.option(
    "--transport",
    type=click.Choice(["stdio", "http"]),
    default="stdio",
    show_default=True,
    help="Serve MCP over stdin/stdout or as an HTTP bridge.",
)
@click.option("--host", default=None, help="HTTP bridge bind address.")
@click.option("--port", type=int, default=None, help="HTTP bridge port.")
@click.option("--log-level", default=None, help="Override LOG_LEVEL.")
def main(transport: str, host: str | None, port: int | None, log_level: str | None) -> None:
    """Serve OpenAI vector store operations over the Model Context Protocol."""
    if log_level:
        os.environ["LOG_LEVEL"] = log_level

    from vector_store_mcp.config.loader import get_settings
    from vector_store_mcp.utils.logging import setup_logging

    get_settings.cache_clear()
    settings = get_settings()
    setup_logging()

    if transport == "http":
        import uvicorn

        uvicorn.run(
            "vector_store_mcp.main:app",
            host=host or settings.host,
            port=port or settings.port,
            log_config=None,
        )
        return

    from vector_store_mcp.mcp.handlers import MCPHandlers
    from vector_store_mcp.mcp.jsonrpc import JsonRpcProcessor
    from vector_store_mcp.mcp.registry import load_configured_registry
    from vector_store_mcp.mcp.transport_stdio import run_stdio_server

    processor = JsonRpcProcessor(MCPHandlers(load_configured_registry()))
    asyncio.run(run_stdio_server(processor))


if __name__ == "__main__":
    main()
