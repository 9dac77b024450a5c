# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for the stdio process layer using a tiny echo server."""

import asyncio
import json
import sys

import pytest

from polyglot_lsp.lsp.config import LSPServerConfig
from polyglot_lsp.lsp.errors import ServerUnavailable
from polyglot_lsp.lsp.manager import LSPSessionManager
from polyglot_lsp.lsp.transport import ServerProcessLayer, StdioProcessLayer

from conftest import FakeProcessLayer

# Answers every request with {"echo": <method>}; exits when stdin closes.
ECHO_SERVER = r"""
import json
import sys

stdin = sys.stdin.buffer
out = sys.stdout.buffer
while True:
    header = b""
    while not header.endswith(b"\r\n\r\n"):
        ch = stdin.read(1)
        if not ch:
            sys.exit(0)
        header += ch
    length = int(header.split(b":")[1].strip())
    message = json.loads(stdin.read(length))
    if "id" in message:
        body = json.dumps(
            {"jsonrpc": "2.0", "id": message["id"], "result": {"echo": message["method"]}}
        ).encode()
        out.write(b"Content-Length: %d\r\n\r\n" % len(body) + body)
        out.flush()
"""


@pytest.fixture
def echo_layer() -> StdioProcessLayer:
    config = LSPServerConfig(
        name="echo",
        language_id="echo",
        file_extensions=[],
        command=[sys.executable, "-c", ECHO_SERVER],
    )
    return StdioProcessLayer(servers={"echo": config}, stop_timeout=2.0)


class TestProtocolConformance:
    def test_layers_satisfy_protocol(self, echo_layer):
        assert isinstance(echo_layer, ServerProcessLayer)
        assert isinstance(FakeProcessLayer(), ServerProcessLayer)


class TestStdioProcessLayer:
    @pytest.mark.asyncio
    async def test_unknown_language(self, echo_layer):
        assert not await echo_layer.check_available("cobol")
        result = await echo_layer.start("cobol", "/tmp")
        assert not result.success
        assert "cobol" in result.error

    @pytest.mark.asyncio
    async def test_send_to_unknown_session(self, echo_layer):
        with pytest.raises(ConnectionError):
            await echo_layer.send("echo-99", "{}")

    @pytest.mark.asyncio
    async def test_download_not_offered(self, echo_layer):
        status = await echo_layer.get_status("echo")
        assert status.available
        assert not status.can_download
        with pytest.raises(ServerUnavailable):
            await echo_layer.download_server("echo")

    @pytest.mark.asyncio
    async def test_round_trip_through_child_process(self, echo_layer, tmp_path):
        received = asyncio.get_running_loop().create_future()

        def on_message(session_id, raw):
            if not received.done():
                received.set_result((session_id, raw))

        echo_layer.subscribe(on_message)
        result = await echo_layer.start("echo", str(tmp_path))
        assert result.success

        await echo_layer.send(
            result.session_id,
            json.dumps({"jsonrpc": "2.0", "id": 1, "method": "ping", "params": None}),
        )
        session_id, raw = await asyncio.wait_for(received, 5.0)

        assert session_id == result.session_id
        assert json.loads(raw)["result"] == {"echo": "ping"}

        await echo_layer.stop(result.session_id)
        await echo_layer.stop(result.session_id)

    @pytest.mark.asyncio
    async def test_manager_over_child_process(self, echo_layer, tmp_path):
        async with LSPSessionManager(echo_layer) as manager:
            session_id = await manager.start("echo", str(tmp_path))
            result = await manager.request(session_id, "custom/ping", {})
            assert result == {"echo": "custom/ping"}

        assert manager.get_session(session_id) is None
