"""
Integration Tests for the Stdio Channel
=======================================

Drives the line-delimited JSON-RPC channel with in-memory line streams.
"""

import json
from typing import List

import pytest

from html2image_mcp.mcp_server.stdio import LineTooLong, StdioChannel


pytestmark = pytest.mark.integration


async def lines_of(*lines: str):
    for line in lines:
        yield line + "\n"


class OutputCollector:
    """Collects written lines as decoded JSON."""

    def __init__(self) -> None:
        self.lines: List[str] = []

    async def write(self, text: str) -> None:
        assert "\n" not in text
        self.lines.append(text)

    @property
    def responses(self) -> List[dict]:
        return [json.loads(line) for line in self.lines]


class TooLongOnce:
    """Line source whose second line exceeds the read limit."""

    def __init__(self, lines: List[str]):
        self.lines = list(lines)
        self.position = 0

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        self.position += 1
        if self.position == 2:
            raise LineTooLong("Separator is not found, and chunk exceed the limit")
        if not self.lines:
            raise StopAsyncIteration
        return self.lines.pop(0)


def rpc(method, request_id, params=None):
    message = {"jsonrpc": "2.0", "id": request_id, "method": method}
    if params is not None:
        message["params"] = params
    return json.dumps(message)


class TestStdioChannel:
    """Test the persistent stdio channel."""

    @pytest.mark.asyncio
    async def test_responses_in_request_order(self, services, render_arguments):
        output = OutputCollector()
        channel = StdioChannel(services.handler)

        handled = await channel.serve(
            lines_of(
                rpc("tools/call", 1, {"name": "html2image", "arguments": render_arguments}),
                rpc("tools/list", 2),
                rpc("ping", 3),
            ),
            output.write,
        )

        assert handled == 3
        assert [response["id"] for response in output.responses] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_parse_error_keeps_channel_open(self, services):
        """A malformed line gets an error response; later lines are still served."""
        output = OutputCollector()

        await StdioChannel(services.handler).serve(
            lines_of("this is not json", rpc("ping", 2)), output.write
        )

        first, second = output.responses
        assert first["error"]["code"] == -32700
        assert first["id"] is None
        assert second == {"jsonrpc": "2.0", "id": 2, "result": {}}

    @pytest.mark.asyncio
    async def test_infinite_wait_rejected_and_channel_stays_responsive(self, services):
        """A render asking for an Infinity wait is refused at parse time."""
        output = OutputCollector()
        call = (
            '{"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": '
            '{"name": "html2image", "arguments": {"html": "<p>x</p>", "waitFor": Infinity}}}'
        )

        handled = await StdioChannel(services.handler).serve(
            lines_of(call, rpc("ping", 2)), output.write
        )

        assert handled == 2
        first, second = output.responses
        assert first["error"]["code"] == -32700
        assert second == {"jsonrpc": "2.0", "id": 2, "result": {}}
        assert services.engine.pages_opened == 0

    @pytest.mark.asyncio
    async def test_blank_lines_and_notifications_produce_no_output(self, services):
        output = OutputCollector()
        notification = json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"})

        handled = await StdioChannel(services.handler).serve(
            lines_of("", "   ", notification), output.write
        )

        assert handled == 1
        assert output.lines == []

    @pytest.mark.asyncio
    async def test_overlong_line(self, services):
        output = OutputCollector()

        await StdioChannel(services.handler).serve(
            TooLongOnce([rpc("ping", 1), rpc("ping", 3)]), output.write
        )

        responses = output.responses
        assert responses[0]["id"] == 1
        assert responses[1]["error"]["code"] == -32700
        assert responses[2]["id"] == 3

    @pytest.mark.asyncio
    async def test_tool_error_result(self, services):
        output = OutputCollector()

        await StdioChannel(services.handler).serve(
            lines_of(rpc("tools/call", 5, {"name": "html2image", "arguments": {}})),
            output.write,
        )

        result = output.responses[0]["result"]
        assert result["isError"] is True
        assert result["structuredContent"]["error"]["data"] == {"phase": "no-content-source"}
