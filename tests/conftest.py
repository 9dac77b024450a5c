# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Shared fixtures: an in-memory process layer standing in for real servers."""

import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

import pytest

from polyglot_lsp.lsp.config import LSPSettings
from polyglot_lsp.lsp.manager import LSPSessionManager
from polyglot_lsp.lsp.transport import ServerAvailability, StartResult
from polyglot_lsp.service import LSPService


class FakeProcessLayer:
    """Process layer that records traffic and answers configured requests."""

    def __init__(self):
        self.available: Dict[str, bool] = {}
        self.can_download: Dict[str, bool] = {}
        self.start_results: Dict[str, StartResult] = {}
        self.responses: Dict[str, Any] = {
            "initialize": {"capabilities": {"hoverProvider": True}},
            "shutdown": None,
        }
        self.errors: Dict[str, Dict[str, Any]] = {}
        self.fail_send_methods: set = set()
        self.start_gate: Optional[asyncio.Event] = None
        self.sent: List[Dict[str, Any]] = []
        self.started: List[tuple] = []
        self.stopped: List[str] = []
        self.downloads: List[str] = []
        self._callbacks: List[Callable[[str, str], None]] = []
        self._counter = 0

    # ServerProcessLayer

    async def check_available(self, language: str) -> bool:
        return self.available.get(language, True)

    async def get_status(self, language: str) -> ServerAvailability:
        available = self.available.get(language, True)
        return ServerAvailability(
            available=available,
            installed=available,
            can_download=self.can_download.get(language, False),
            download_url="https://example.invalid/server.tar.gz",
        )

    async def download_server(self, language: str) -> str:
        self.downloads.append(language)
        self.available[language] = True
        return f"/opt/servers/{language}"

    async def start(self, language: str, root_path: str) -> StartResult:
        self.started.append((language, root_path))
        if self.start_gate is not None:
            await self.start_gate.wait()
        if language in self.start_results:
            return self.start_results[language]
        self._counter += 1
        return StartResult(session_id=f"{language}-{self._counter}", success=True)

    async def stop(self, session_id: str) -> None:
        self.stopped.append(session_id)

    async def send(self, session_id: str, message: str) -> None:
        data = json.loads(message)
        if data.get("method") in self.fail_send_methods:
            raise ConnectionError("pipe closed")
        self.sent.append({"session_id": session_id, **data})

        if "id" not in data:
            return
        method = data["method"]
        if method in self.errors:
            reply = {"jsonrpc": "2.0", "id": data["id"], "error": self.errors[method]}
        elif method in self.responses:
            result = self.responses[method]
            if callable(result):
                result = result(data.get("params"))
            reply = {"jsonrpc": "2.0", "id": data["id"], "result": result}
        else:
            return
        asyncio.get_running_loop().call_soon(self.emit, session_id, json.dumps(reply))

    def subscribe(self, callback: Callable[[str, str], None]) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    # Test helpers

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks)

    def emit(self, session_id: str, raw: str) -> None:
        for callback in list(self._callbacks):
            callback(session_id, raw)

    def publish_diagnostics(self, session_id: str, uri: str, diagnostics: List[Dict]) -> None:
        self.emit(
            session_id,
            json.dumps(
                {
                    "jsonrpc": "2.0",
                    "method": "textDocument/publishDiagnostics",
                    "params": {"uri": uri, "diagnostics": diagnostics},
                }
            ),
        )

    def messages(self, method: str, session_id: Optional[str] = None) -> List[Dict[str, Any]]:
        return [
            m
            for m in self.sent
            if m.get("method") == method and (session_id is None or m["session_id"] == session_id)
        ]


def make_diagnostic(severity: Optional[int], message: str = "problem", line: int = 0) -> Dict:
    diagnostic = {
        "range": {
            "start": {"line": line, "character": 0},
            "end": {"line": line, "character": 5},
        },
        "message": message,
    }
    if severity is not None:
        diagnostic["severity"] = severity
    return diagnostic


@pytest.fixture
def layer() -> FakeProcessLayer:
    return FakeProcessLayer()


@pytest.fixture
def settings() -> LSPSettings:
    return LSPSettings(request_timeout=1.0, shutdown_timeout=0.2)


@pytest.fixture
def manager(layer, settings) -> LSPSessionManager:
    return LSPSessionManager(layer, settings=settings)


@pytest.fixture
def service(layer, settings) -> LSPService:
    return LSPService(layer, settings=settings)
