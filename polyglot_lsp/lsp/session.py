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

"""Session state and the session registry."""

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle of a language server session."""

    STARTING = "starting"
    INITIALIZING = "initializing"
    READY = "ready"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


def normalize_root_path(root_path: str) -> str:
    """Normalize a project root so equal roots compare equal."""
    return os.path.normpath(os.path.abspath(os.path.expanduser(root_path)))


@dataclass
class Session:
    """One live language server instance."""

    session_id: str
    language: str
    root_path: str
    state: SessionState = SessionState.INITIALIZING
    capabilities: Dict[str, Any] = field(default_factory=dict)
    document_versions: Dict[str, int] = field(default_factory=dict)  # uri -> version

    @property
    def initialized(self) -> bool:
        return self.state == SessionState.READY

    @property
    def key(self) -> Tuple[str, str]:
        return (self.language, self.root_path)

    def open_document(self, uri: str) -> int:
        """Record a freshly opened document at version 1."""
        self.document_versions[uri] = 1
        return 1

    def bump_version(self, uri: str) -> Tuple[int, bool]:
        """Advance a document's version.

        Returns:
            Tuple of (new version, whether the document had a recorded version)
        """
        current = self.document_versions.get(uri)
        version = (current or 0) + 1
        self.document_versions[uri] = version
        return version, current is not None

    def close_document(self, uri: str) -> Optional[int]:
        return self.document_versions.pop(uri, None)


class SessionRegistry:
    """Maps session ids to sessions."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def add(self, session: Session) -> None:
        self._sessions[session.session_id] = session
        logger.debug(
            f"Registered session {session.session_id} ({session.language} @ {session.root_path})"
        )

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[Session]:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.document_versions.clear()
            logger.debug(f"Removed session {session_id}")
        return session

    def find(self, language: str, root_path: str) -> Optional[Session]:
        """Find the live session serving a language and root."""
        for session in self._sessions.values():
            if session.key == (language, root_path) and session.state in (
                SessionState.INITIALIZING,
                SessionState.READY,
            ):
                return session
        return None

    def ids(self) -> List[str]:
        return list(self._sessions.keys())
