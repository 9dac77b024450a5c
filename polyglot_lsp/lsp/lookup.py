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

"""Definition and reference lookups for any file.

Routes a query about a file to a session even when the file was never
opened, using the connection registry:

1. the file's own registered connection
2. the session registered for the file's (root, language)
3. any registered connection of the same language
"""

import logging
import os
from typing import List, Optional

from polyglot_lsp.lsp.config import get_language_for_path, has_lsp_support
from polyglot_lsp.lsp.connections import Connection, ConnectionRegistry
from polyglot_lsp.lsp.manager import LSPSessionManager
from polyglot_lsp.lsp.types import Location

logger = logging.getLogger(__name__)


def _is_within(file_path: str, root_path: str) -> bool:
    root = root_path.rstrip("/\\")
    return file_path == root or file_path.startswith(root + "/") or file_path.startswith(
        root + os.sep
    )


class CrossFileLookup:
    """Definition/reference provider that works from any file."""

    def __init__(self, manager: LSPSessionManager, connections: Optional[ConnectionRegistry] = None):
        self._manager = manager
        self._connections = connections or manager.connections

    def resolve_connection(self, file_path: str) -> Optional[Connection]:
        """Find the connection that should serve a file.

        Args:
            file_path: Absolute path to the file

        Returns:
            Connection or None if no session can serve the file
        """
        conn = self._connections.get_connection(file_path)
        if conn is not None:
            return conn

        language = get_language_for_path(file_path)
        if not language or not has_lsp_support(language):
            return None

        # Deepest registered root containing the file wins
        roots = sorted(
            (r for r in self._connections.roots_for_language(language) if _is_within(file_path, r)),
            key=len,
            reverse=True,
        )
        for root in roots:
            conn = self._connections.get_connection_by_root(root, language)
            if conn is not None:
                return conn

        for candidate in self._connections.get_all_connections().values():
            if candidate.language == language:
                return candidate

        return None

    def has_connection(self, file_path: str) -> bool:
        return self.resolve_connection(file_path) is not None

    async def get_definition(
        self, file_path: str, line: int, character: int
    ) -> Optional[List[Location]]:
        """Get definitions at a 0-indexed position, None if unavailable."""
        conn = self.resolve_connection(file_path)
        if conn is None:
            logger.debug(f"No LSP connection for {file_path}")
            return None

        logger.info(f"Getting definition at {file_path}:{line + 1}:{character + 1}")
        result = await self._manager.definition(conn.session_id, file_path, line, character)
        if result:
            logger.info(f"Found {len(result)} definitions")
            return result
        return None

    async def get_references(
        self, file_path: str, line: int, character: int
    ) -> Optional[List[Location]]:
        """Get references at a 0-indexed position, None if unavailable."""
        conn = self.resolve_connection(file_path)
        if conn is None:
            logger.debug(f"No LSP connection for {file_path}")
            return None

        logger.info(f"Getting references at {file_path}:{line + 1}:{character + 1}")
        result = await self._manager.references(conn.session_id, file_path, line, character)
        if result:
            logger.info(f"Found {len(result)} references")
            return result
        return None
