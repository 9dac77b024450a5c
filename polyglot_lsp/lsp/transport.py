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

"""Process layer boundary.

The session engine never touches processes or pipes itself. It talks to a
``ServerProcessLayer`` that starts and stops servers, ships raw messages,
and delivers inbound messages to one subscriber callback.
``StdioProcessLayer`` is a local implementation speaking Content-Length
framed JSON over a child process's stdin/stdout.
"""

import asyncio
import itertools
import logging
import shutil
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, runtime_checkable

from polyglot_lsp.lsp.config import LSPServerConfig, get_server_config
from polyglot_lsp.lsp.errors import ServerUnavailable
from polyglot_lsp.lsp.jsonrpc import encode_frame, parse_frame

logger = logging.getLogger(__name__)

InboundCallback = Callable[[str, str], None]  # (session_id, raw message)


@dataclass
class ServerAvailability:
    """Install state of the server for a language."""

    available: bool
    installed: bool
    can_download: bool = False
    install_path: Optional[str] = None
    download_url: Optional[str] = None


@dataclass
class StartResult:
    """Outcome of asking the process layer to start a server."""

    session_id: str
    success: bool
    error: Optional[str] = None


@runtime_checkable
class ServerProcessLayer(Protocol):
    """Capabilities the session engine needs from the process layer."""

    async def check_available(self, language: str) -> bool: ...

    async def get_status(self, language: str) -> ServerAvailability: ...

    async def download_server(self, language: str) -> str: ...

    async def start(self, language: str, root_path: str) -> StartResult: ...

    async def stop(self, session_id: str) -> None: ...

    async def send(self, session_id: str, message: str) -> None: ...

    def subscribe(self, callback: InboundCallback) -> Callable[[], None]: ...


@dataclass
class _ServerProcess:
    process: asyncio.subprocess.Process
    reader_task: Optional[asyncio.Task] = None


class StdioProcessLayer:
    """Runs configured language servers as local child processes."""

    def __init__(
        self,
        servers: Optional[Dict[str, LSPServerConfig]] = None,
        stop_timeout: float = 5.0,
    ):
        """Initialize the layer.

        Args:
            servers: Language -> server config, defaults to ``LANGUAGE_SERVERS``
            stop_timeout: Seconds to wait for a process to exit before killing it
        """
        self._servers = servers
        self._stop_timeout = stop_timeout
        self._processes: Dict[str, _ServerProcess] = {}
        self._callbacks: List[InboundCallback] = []
        self._counter = itertools.count(1)

    def _config(self, language: str) -> Optional[LSPServerConfig]:
        if self._servers is not None:
            return self._servers.get(language)
        return get_server_config(language)

    async def check_available(self, language: str) -> bool:
        config = self._config(language)
        return config is not None and shutil.which(config.command[0]) is not None

    async def get_status(self, language: str) -> ServerAvailability:
        config = self._config(language)
        install_path = shutil.which(config.command[0]) if config else None
        return ServerAvailability(
            available=install_path is not None,
            installed=install_path is not None,
            can_download=False,
            install_path=install_path,
        )

    async def download_server(self, language: str) -> str:
        config = self._config(language)
        raise ServerUnavailable(language, config.install_command if config else None)

    async def start(self, language: str, root_path: str) -> StartResult:
        config = self._config(language)
        if config is None:
            return StartResult(
                session_id="", success=False, error=f"No server configuration for {language}"
            )

        session_id = f"{language}-{next(self._counter)}"
        cmd = config.command + config.args
        logger.info(f"Starting LSP server: {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                cwd=root_path,
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.error(f"LSP server not found: {config.command[0]}")
            return StartResult(session_id="", success=False, error=str(e))

        entry = _ServerProcess(process=process)
        entry.reader_task = asyncio.create_task(self._read_messages(session_id, process))
        self._processes[session_id] = entry
        return StartResult(session_id=session_id, success=True)

    async def stop(self, session_id: str) -> None:
        entry = self._processes.pop(session_id, None)
        if entry is None:
            return

        process = entry.process
        if process.returncode is None:
            if process.stdin is not None:
                process.stdin.close()
            try:
                await asyncio.wait_for(process.wait(), timeout=self._stop_timeout)
            except asyncio.TimeoutError:
                process.kill()
                await process.wait()

        if entry.reader_task is not None:
            entry.reader_task.cancel()
            try:
                await entry.reader_task
            except asyncio.CancelledError:
                pass

    async def send(self, session_id: str, message: str) -> None:
        entry = self._processes.get(session_id)
        if entry is None or entry.process.stdin is None:
            raise ConnectionError(f"No running server for session {session_id}")

        entry.process.stdin.write(encode_frame(message))
        await entry.process.stdin.drain()

    def subscribe(self, callback: InboundCallback) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    async def _read_messages(self, session_id: str, process: asyncio.subprocess.Process) -> None:
        """Read framed messages from a server until its stdout closes."""
        if process.stdout is None:
            return

        buffer = b""
        while True:
            chunk = await process.stdout.read(4096)
            if not chunk:
                break

            buffer += chunk
            while True:
                message, remaining = parse_frame(buffer)
                if message is None and remaining == buffer:
                    break
                buffer = remaining
                if message is not None:
                    self._deliver(session_id, message)

        logger.debug(f"Server output closed for session {session_id}")

    def _deliver(self, session_id: str, message: str) -> None:
        for callback in list(self._callbacks):
            try:
                callback(session_id, message)
            except Exception as e:
                logger.error(f"Inbound message callback error: {e}")
