"""Line-delimited stdio transport for MCP.

Each inbound line is one JSON-RPC message and each outbound message is
written as exactly one line. Requests are handled concurrently, so
responses go out in completion order; clients correlate them by id.
"""

import asyncio
import json
import logging
import signal
import sys
from typing import Any, Protocol

from vector_store_mcp.config.loader import get_settings
from vector_store_mcp.mcp.errors import make_error_data, map_local_failure
from vector_store_mcp.mcp.jsonrpc import JsonRpcProcessor
from vector_store_mcp.mcp.models import JsonRpcError, JsonRpcResponse
from vector_store_mcp.utils.logging import get_logger, set_request_id

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024
WRITE_TIMEOUT = 10.0


class ByteReader(Protocol):
    async def read(self, n: int = -1) -> bytes: ...


class ByteWriter(Protocol):
    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...


def encode_message(message: JsonRpcResponse | dict[str, Any]) -> str:
    """Serialize a message to a single line (without the trailing newline)."""
    payload = message.model_dump() if isinstance(message, JsonRpcResponse) else message
    text = json.dumps(payload, ensure_ascii=False)
    # Line and paragraph separators are valid raw JSON but split lines for
    # some readers; the escaped form decodes to the same string.
    text = text.replace("\u2028", "\\u2028").replace("\u2029", "\\u2029")
    return text.replace("\r", " ").replace("\n", " ")


class LineFramer:
    """Split a byte stream into lines, flagging lines over the size limit.

    feed() returns complete lines; None stands in for an oversized line,
    whose bytes are discarded up to its terminating newline.
    """

    def __init__(self, max_line_bytes: int):
        self.max_line_bytes = max_line_bytes
        self._buffer = bytearray()
        self._discarding = False

    def feed(self, data: bytes) -> list[bytes | None]:
        self._buffer.extend(data)
        lines: list[bytes | None] = []
        while True:
            end = self._buffer.find(b"\n")
            if end == -1:
                if len(self._buffer) > self.max_line_bytes:
                    if not self._discarding:
                        lines.append(None)
                        self._discarding = True
                    self._buffer.clear()
                break

            line = bytes(self._buffer[:end])
            del self._buffer[: end + 1]
            if self._discarding:
                self._discarding = False
                continue
            if len(line) > self.max_line_bytes:
                lines.append(None)
                continue
            lines.append(line.rstrip(b"\r"))
        return lines

    def flush(self) -> list[bytes | None]:
        """Return a final unterminated line at end of input."""
        if self._discarding or not self._buffer:
            self._buffer.clear()
            self._discarding = False
            return []
        line = bytes(self._buffer).rstrip(b"\r")
        self._buffer.clear()
        return [line]


class StdioServer:
    """Reads framed requests, processes them concurrently, writes one line per response."""

    def __init__(
        self,
        processor: JsonRpcProcessor,
        writer: ByteWriter,
        max_message_bytes: int | None = None,
        write_timeout: float = WRITE_TIMEOUT,
    ):
        self.processor = processor
        self.writer = writer
        self.max_message_bytes = max_message_bytes or get_settings().max_message_bytes
        self.write_timeout = write_timeout
        self._pending: set[asyncio.Task] = set()

    async def serve(self, reader: ByteReader) -> None:
        """Serve until end of input, then wait for in-flight requests."""
        framer = LineFramer(self.max_message_bytes)
        while True:
            chunk = await reader.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            for line in framer.feed(chunk):
                self.submit(line)
        for line in framer.flush():
            self.submit(line)

        logger.info("Input closed, finishing pending requests")
        await self.drain()

    def submit(self, line: bytes | None) -> None:
        """Schedule handling of one framed line."""
        if line is None:
            response = JsonRpcResponse(
                id=None,
                error=JsonRpcError(
                    **make_error_data(
                        map_local_failure("parse"),
                        f"Message exceeds maximum size of {self.max_message_bytes} bytes",
                    )
                ),
            )
            self._track(self.send(response))
            return

        if not line.strip():
            # Some clients send a blank line as part of their handshake
            logger.debug("Ignoring empty line")
            return

        self._track(self.handle_line(line))

    def _track(self, coro: Any) -> None:
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def handle_line(self, line: bytes) -> None:
        set_request_id()
        try:
            response = await self.processor.handle_message(line)
        except Exception:
            logger.exception("Unhandled error while handling message")
            response = self.processor.internal_error()
        if response is not None:
            await self.send(response)

    async def send(self, message: JsonRpcResponse | dict[str, Any]) -> None:
        """Write one message. Write failures are logged, never raised."""
        data = (encode_message(message) + "\n").encode("utf-8")
        try:
            self.writer.write(data)
            await asyncio.wait_for(self.writer.drain(), timeout=self.write_timeout)
        except (OSError, RuntimeError, ValueError, asyncio.TimeoutError) as e:
            logger.error(f"Failed to write response: {type(e).__name__}: {e}")

    async def drain(self) -> None:
        """Wait for all in-flight requests to finish."""
        while True:
            pending = [task for task in self._pending if not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def handle_loop_exception(
        self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
    ) -> None:
        """Turn a stray task failure into an InternalError response."""
        exc = context.get("exception")
        get_logger("stdio").error(
            "Unhandled event loop error",
            message=context.get("message"),
            error=repr(exc) if exc else None,
        )
        if loop.is_closed():
            return
        self._track(self.send(self.processor.internal_error()))


class _ThreadedReader:
    """Blocking stdin read in a worker thread, for stdin that is not a pipe."""

    def __init__(self, stream: Any):
        self._stream = stream

    async def read(self, n: int = -1) -> bytes:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._stream.read1, n)


class _SyncWriter:
    """Blocking stdout writes, for stdout that is not a pipe."""

    def __init__(self, stream: Any):
        self._stream = stream

    def write(self, data: bytes) -> None:
        self._stream.write(data)

    async def drain(self) -> None:
        self._stream.flush()


async def open_stdio(limit: int) -> tuple[ByteReader, ByteWriter]:
    """Wrap the process stdin/stdout as non-blocking streams where possible."""
    loop = asyncio.get_running_loop()

    reader: ByteReader
    try:
        stream_reader = asyncio.StreamReader(limit=limit)
        protocol = asyncio.StreamReaderProtocol(stream_reader)
        await loop.connect_read_pipe(lambda: protocol, sys.stdin)
        reader = stream_reader
    except (ValueError, OSError, NotImplementedError):
        reader = _ThreadedReader(sys.stdin.buffer)

    writer: ByteWriter
    try:
        transport, write_protocol = await loop.connect_write_pipe(
            asyncio.streams.FlowControlMixin, sys.stdout
        )
        writer = asyncio.StreamWriter(transport, write_protocol, None, loop)
    except (ValueError, OSError, NotImplementedError):
        writer = _SyncWriter(sys.stdout.buffer)

    return reader, writer


async def run_stdio_server(processor: JsonRpcProcessor) -> None:
    """Serve MCP over the process stdin/stdout until EOF or a stop signal."""
    settings = get_settings()
    log = get_logger("stdio")
    loop = asyncio.get_running_loop()

    reader, writer = await open_stdio(settings.max_message_bytes)
    server = StdioServer(processor, writer, settings.max_message_bytes)
    loop.set_exception_handler(server.handle_loop_exception)

    main_task = asyncio.current_task()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, main_task.cancel)  # type: ignore[union-attr]
        except (NotImplementedError, RuntimeError):
            pass

    log.info("MCP server running on stdio", server_name=settings.server_name)
    try:
        await server.serve(reader)
    except asyncio.CancelledError:
        log.info("Received stop signal, shutting down")
    finally:
        await processor.handlers.aclose()
