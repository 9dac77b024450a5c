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

"""Composition root for the LSP client.

``LSPService`` wires the session manager, connection registry, diagnostics
aggregator and status tracker together. ``DocumentBinding`` ties one file in
an editor to its session: connect, open/update/close, queries.

Usage:
    async with LSPService(StdioProcessLayer()) as service:
        binding = service.bind("/work/project/app.py", "/work/project")
        if await binding.connect():
            await binding.open(text)
            hover = await binding.hover(3, 10)
"""

import logging
from typing import List, Optional

from polyglot_lsp.diagnostics import DiagnosticsAggregator, LspDiagnostic
from polyglot_lsp.lsp.config import (
    LSPSettings,
    editor_to_lsp_language,
    get_language_for_path,
    has_lsp_support,
)
from polyglot_lsp.lsp.connections import ConnectionRegistry
from polyglot_lsp.lsp.errors import LSPError
from polyglot_lsp.lsp.events import Unsubscribe
from polyglot_lsp.lsp.lookup import CrossFileLookup
from polyglot_lsp.lsp.manager import LSPSessionManager
from polyglot_lsp.lsp.session import normalize_root_path
from polyglot_lsp.lsp.transport import ServerProcessLayer
from polyglot_lsp.lsp.types import Hover, Location
from polyglot_lsp.status import ServerStatusTracker

logger = logging.getLogger(__name__)


class LSPService:
    """Owns every LSP component for one application."""

    def __init__(self, process_layer: ServerProcessLayer, settings: Optional[LSPSettings] = None):
        """Initialize the service.

        Args:
            process_layer: Process layer used to run servers
            settings: Client settings, defaults apply when omitted
        """
        self.settings = settings or LSPSettings()
        self.status = ServerStatusTracker()
        self.connections = ConnectionRegistry()
        self.diagnostics = DiagnosticsAggregator(self.settings.diagnostics)
        self.manager = LSPSessionManager(
            process_layer,
            settings=self.settings,
            connections=self.connections,
            status=self.status,
        )
        self.lookup = CrossFileLookup(self.manager, self.connections)
        self._detach_diagnostics: Optional[Unsubscribe] = None

    async def __aenter__(self) -> "LSPService":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.dispose()

    async def init(self) -> None:
        await self.manager.init()
        if self._detach_diagnostics is None:
            self._detach_diagnostics = self.diagnostics.attach(self.manager)

    async def dispose(self) -> None:
        await self.manager.dispose()
        if self._detach_diagnostics is not None:
            self._detach_diagnostics()
            self._detach_diagnostics = None
        self.connections.clear()
        self.diagnostics.clear_all()

    def bind(self, file_path: str, root_path: str) -> "DocumentBinding":
        return DocumentBinding(self, file_path, root_path)


class DocumentBinding:
    """Connects one file to the session for its language and project root."""

    def __init__(self, service: LSPService, file_path: str, root_path: str):
        self._service = service
        self.file_path = file_path
        self.root_path = normalize_root_path(root_path)
        self.language = get_language_for_path(file_path)
        self.session_id: Optional[str] = None
        self.error: Optional[str] = None
        self.is_open = False

    @property
    def is_connected(self) -> bool:
        return self.session_id is not None

    async def connect(self) -> Optional[str]:
        """Start or reuse the session for this file.

        Failures are recorded in ``error`` rather than raised.

        Returns:
            Session id, or None when no session could be obtained
        """
        if not self._service.settings.enabled or not self.language:
            return None
        if not has_lsp_support(self.language):
            logger.debug(f"No LSP support for language: {self.language}")
            return None

        self.error = None
        try:
            session_id = await self._service.manager.start(self.language, self.root_path)
        except LSPError as e:
            self.error = str(e)
            logger.error(f"Failed to start server for {self.file_path}: {e}")
            return None

        self.session_id = session_id
        self._service.connections.register(
            self.file_path, session_id, self.language, self.root_path
        )
        logger.info(f"Connected {self.file_path} to LSP server: {session_id}")
        return session_id

    async def disconnect(self) -> None:
        """Close the document if open and drop this file's route."""
        await self.close()
        self._service.connections.unregister(self.file_path)
        self.session_id = None

    async def open(self, content: str) -> None:
        """Open the file in its session.

        Raises:
            LSPError: The binding is not connected
            NotInitialized: The session is not ready
        """
        if self.session_id is None or self.language is None:
            raise LSPError("LSP server not connected")

        language_id = editor_to_lsp_language(self.language) or self.language
        await self._service.manager.open_document(
            self.session_id, self.file_path, language_id, content
        )
        self.is_open = True

    async def update(self, content: str) -> None:
        if self.session_id is None or not self.is_open:
            return
        await self._service.manager.change_document(self.session_id, self.file_path, content)

    async def close(self) -> None:
        if self.session_id is None or not self.is_open:
            return
        await self._service.manager.close_document(self.session_id, self.file_path)
        self.is_open = False

    async def hover(self, line: int, character: int) -> Optional[Hover]:
        if self.session_id is None:
            return None
        return await self._service.manager.hover(self.session_id, self.file_path, line, character)

    async def definition(self, line: int, character: int) -> Optional[List[Location]]:
        if self.session_id is None:
            return await self._service.lookup.get_definition(self.file_path, line, character)
        return await self._service.manager.definition(
            self.session_id, self.file_path, line, character
        )

    async def references(self, line: int, character: int) -> Optional[List[Location]]:
        if self.session_id is None:
            return await self._service.lookup.get_references(self.file_path, line, character)
        return await self._service.manager.references(
            self.session_id, self.file_path, line, character
        )

    @property
    def diagnostics(self) -> List[LspDiagnostic]:
        if not self._service.settings.diagnostics.show_diagnostics:
            return []
        return self._service.diagnostics.get_diagnostics(self.file_path)
