"""
Stdio Transport
===============

Line-delimited JSON-RPC channel. Each input line holds one request; each
response is written as one line. Requests are handled one at a time, so
responses leave in the order requests arrived.
"""

from typing import Any, AsyncIterable, Awaitable, Callable, Tuple
import asyncio
import json
import sys

from mcp.types import PARSE_ERROR

from html2image_mcp.config.logging import get_logger
from html2image_mcp.mcp_server.handlers import MessageHandler, error_response

logger = get_logger(__name__)

# Inline HTML and base64 payloads make for long lines
STDIN_LINE_LIMIT = 32 * 1024 * 1024

LineWriter = Callable[[str], Awaitable[None]]


class LineTooLong(Exception):
    """Raised by the line source when a line exceeds the read limit."""


class StreamLines:
    """Async iterator over decoded lines of a stream reader.

    A line over the reader limit raises LineTooLong and is discarded; the
    iterator stays usable for the following lines.
    """

    def __init__(self, reader: asyncio.StreamReader):
        self.reader = reader

    def __aiter__(self) -> "StreamLines":
        return self

    async def __anext__(self) -> str:
        try:
            line = await self.reader.readline()
        except ValueError as e:
            raise LineTooLong(str(e)) from e
        if not line:
            raise StopAsyncIteration
        return line.decode("utf-8", errors="replace")


async def open_stdio() -> Tuple[StreamLines, LineWriter]:
    """Attach non-blocking asyncio streams to the process's stdin and stdout."""
    loop = asyncio.get_running_loop()

    reader = asyncio.StreamReader(limit=STDIN_LINE_LIMIT)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)

    transport, protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, sys.stdout
    )
    writer = asyncio.StreamWriter(transport, protocol, None, loop)

    async def write_line(text: str) -> None:
        writer.write(text.encode("utf-8") + b"\n")
        await writer.drain()

    return StreamLines(reader), write_line


class StdioChannel:
    """Serves JSON-RPC over a pair of line streams."""

    def __init__(self, handler: MessageHandler):
        self.handler = handler
        self.logger: Any = logger.bind(component="stdio_channel")

    async def serve(self, lines: AsyncIterable[str], write_line: LineWriter) -> int:
        """
        Handle requests until the input stream ends.

        Args:
            lines: Incoming text lines
            write_line: Coroutine writing one outgoing line (without newline)

        Returns:
            Number of requests handled
        """
        handled = 0
        iterator = lines.__aiter__()
        while True:
            try:
                line = await iterator.__anext__()
            except StopAsyncIteration:
                break
            except LineTooLong as e:
                self.logger.warning("Request line too long", error=str(e))
                response = error_response(PARSE_ERROR, "Parse error: request too large").to_dict()
                await self._write(write_line, response)
                continue

            line = line.strip()
            if not line:
                continue

            response = await self.handler.handle_raw(line)
            handled += 1
            if response is not None:
                await self._write(write_line, response)

        self.logger.info("Stdio input closed", requests=handled)
        return handled

    async def _write(self, write_line: LineWriter, response: dict) -> None:
        await write_line(json.dumps(response, separators=(",", ":"), ensure_ascii=False))

    async def serve_stdio(self) -> int:
        """Serve the process's stdin/stdout."""
        lines, write_line = await open_stdio()
        self.logger.info("MCP server listening on stdio")
        return await self.serve(lines, write_line)
