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

"""Server status tracking and pending server downloads."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

logger = logging.getLogger(__name__)


class ServerRunState(str, Enum):
    """Status of a server as shown to users."""

    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass
class ServerStatusEntry:
    """Status of one session's server."""

    session_id: str
    language: str
    root_path: str
    status: ServerRunState
    error: Optional[str] = None


@dataclass
class PendingDownload:
    """A server the user may choose to download."""

    language: str
    language_display_name: str
    server_name: str
    download_url: Optional[str] = None


@dataclass
class DownloadProgress:
    """Progress report for a server download."""

    language: str
    status: str  # downloading | extracting | completed | error
    progress: Optional[float] = None  # 0.0 - 1.0
    message: Optional[str] = None


class ServerStatusTracker:
    """Keeps server statuses and the queue of downloads awaiting the user."""

    def __init__(self):
        self._servers: Dict[str, ServerStatusEntry] = {}
        self._pending_downloads: List[PendingDownload] = []
        self.download_progress: Optional[DownloadProgress] = None
        self.is_downloading = False

    def set_status(self, entry: ServerStatusEntry) -> None:
        self._servers[entry.session_id] = entry
        logger.debug(f"Server {entry.session_id} is {entry.status.value}")

    def remove(self, session_id: str) -> None:
        self._servers.pop(session_id, None)

    def get(self, session_id: str) -> Optional[ServerStatusEntry]:
        return self._servers.get(session_id)

    def find(self, language: str, root_path: str) -> Optional[ServerStatusEntry]:
        for entry in self._servers.values():
            if entry.language == language and entry.root_path == root_path:
                return entry
        return None

    @property
    def servers(self) -> List[ServerStatusEntry]:
        return list(self._servers.values())

    @property
    def pending_downloads(self) -> List[PendingDownload]:
        return list(self._pending_downloads)

    def add_pending_download(self, download: PendingDownload) -> bool:
        """Queue a download unless one for the same language is queued.

        Returns:
            True if the download was added
        """
        if any(d.language == download.language for d in self._pending_downloads):
            return False
        self._pending_downloads.append(download)
        return True

    def remove_pending_download(self, language: str) -> None:
        self._pending_downloads = [d for d in self._pending_downloads if d.language != language]

    def clear_pending_downloads(self) -> None:
        self._pending_downloads = []

    def set_download_progress(self, progress: Optional[DownloadProgress]) -> None:
        self.download_progress = progress
        if progress is None:
            return
        self.is_downloading = progress.status in ("downloading", "extracting")
        if progress.status == "completed":
            self.remove_pending_download(progress.language)

    def render(self, console: Optional[Console] = None) -> None:
        """Print a table of server statuses."""
        console = console or Console()
        table = Table(title="Language Servers")
        table.add_column("Session", style="cyan")
        table.add_column("Language")
        table.add_column("Root")
        table.add_column("Status")

        styles = {
            ServerRunState.STARTING: "yellow",
            ServerRunState.RUNNING: "green",
            ServerRunState.STOPPED: "dim",
            ServerRunState.ERROR: "red",
        }
        for entry in self._servers.values():
            status = f"[{styles[entry.status]}]{entry.status.value}[/]"
            if entry.error:
                status += f" ({escape(entry.error)})"
            table.add_row(entry.session_id, entry.language, escape(entry.root_path), status)

        console.print(table)
