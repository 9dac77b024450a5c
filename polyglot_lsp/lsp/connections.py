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

"""Cross-file connection registry.

Tracks which session serves which file, plus a (root, language) index so a
file that was never opened can still be routed to an existing session.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Connection:
    """Route from a file to the session serving it."""

    session_id: str
    language: str
    root_path: str


class ConnectionRegistry:
    """File path -> session routing table."""

    def __init__(self):
        self._connections: Dict[str, Connection] = {}  # file path -> connection
        self._sessions_by_root: Dict[Tuple[str, str], str] = {}  # (root, language) -> session

    def get_connection(self, file_path: str) -> Optional[Connection]:
        """Direct lookup of a registered file."""
        return self._connections.get(file_path)

    def get_connection_by_root(self, root_path: str, language: str) -> Optional[Connection]:
        """Find the session for a root and language, for files never registered."""
        session_id = self._sessions_by_root.get((root_path, language))
        if session_id is None:
            return None
        return Connection(session_id=session_id, language=language, root_path=root_path)

    def roots_for_language(self, language: str) -> List[str]:
        return [root for (root, lang) in self._sessions_by_root if lang == language]

    def register(self, file_path: str, session_id: str, language: str, root_path: str) -> None:
        """Register (or replace) the connection for a file."""
        logger.debug(
            f"Registering connection for {file_path}: session={session_id}, lang={language}"
        )
        self._connections[file_path] = Connection(
            session_id=session_id, language=language, root_path=root_path
        )
        self._sessions_by_root[(root_path, language)] = session_id

    def unregister(self, file_path: str) -> None:
        """Drop a file's route; the root index is left for other files."""
        logger.debug(f"Unregistering connection for {file_path}")
        self._connections.pop(file_path, None)

    def unregister_by_session(self, session_id: str) -> None:
        """Drop every route that points at a session."""
        logger.debug(f"Unregistering all connections for session {session_id}")
        self._connections = {
            path: conn for path, conn in self._connections.items() if conn.session_id != session_id
        }
        self._sessions_by_root = {
            key: sid for key, sid in self._sessions_by_root.items() if sid != session_id
        }

    def get_all_connections(self) -> Dict[str, Connection]:
        return dict(self._connections)

    def clear(self) -> None:
        self._connections.clear()
        self._sessions_by_root.clear()
