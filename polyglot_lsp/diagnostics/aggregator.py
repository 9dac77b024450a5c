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

"""Per-file diagnostics with running severity counts.

Every push replaces the diagnostics of one file. The aggregate counts are
maintained by delta (``aggregate += after - before`` for that file only),
so an update costs time proportional to the pushed set, not to every file
with diagnostics.
"""

import logging
from typing import Any, Dict, List, Optional

from polyglot_lsp.diagnostics.models import (
    DiagnosticPosition,
    DiagnosticRange,
    LspDiagnostic,
    SeverityCounts,
)
from polyglot_lsp.lsp.config import DiagnosticVisibility
from polyglot_lsp.lsp.events import Unsubscribe
from polyglot_lsp.lsp.manager import LSPSessionManager
from polyglot_lsp.lsp.types import (
    Diagnostic,
    DiagnosticSeverity,
    severity_to_string,
    uri_to_file_path,
)

logger = logging.getLogger(__name__)


def to_lsp_diagnostic(file_path: str, index: int, raw: Dict[str, Any]) -> LspDiagnostic:
    """Convert a published diagnostic to the stored shape.

    A missing severity counts as an error.
    """
    diagnostic = Diagnostic.from_dict(raw)
    rng = diagnostic.range
    return LspDiagnostic(
        id=f"lsp-{file_path}-{index}",
        severity=severity_to_string(diagnostic.severity or DiagnosticSeverity.ERROR),
        message=diagnostic.message,
        range=DiagnosticRange(
            start=DiagnosticPosition(line=rng.start.line, column=rng.start.character),
            end=DiagnosticPosition(line=rng.end.line, column=rng.end.character),
        ),
        code=str(diagnostic.code) if diagnostic.code is not None else None,
    )


class DiagnosticsAggregator:
    """Stores filtered diagnostics per file and keeps aggregate counts."""

    def __init__(self, visibility: Optional[DiagnosticVisibility] = None):
        """Initialize the aggregator.

        Args:
            visibility: Severity filter applied when diagnostics are pushed
        """
        self.visibility = visibility or DiagnosticVisibility()
        self._by_file: Dict[str, List[LspDiagnostic]] = {}
        self._counts = SeverityCounts()

    @property
    def counts(self) -> SeverityCounts:
        return self._counts.model_copy()

    @property
    def files(self) -> List[str]:
        return list(self._by_file.keys())

    def set_diagnostics(self, uri: str, diagnostics: List[Dict[str, Any]]) -> None:
        """Replace the diagnostics of the file behind ``uri``.

        Args:
            uri: Document URI (or path) the diagnostics belong to
            diagnostics: Raw diagnostics as published by the server
        """
        file_path = uri_to_file_path(uri)

        converted = []
        for index, raw in enumerate(diagnostics):
            try:
                converted.append(to_lsp_diagnostic(file_path, index, raw))
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.warning(f"Skipping malformed diagnostic {index} for {file_path}: {e}")

        filtered = [d for d in converted if self.visibility.allows(d.severity)]

        before = SeverityCounts.of(self._by_file.get(file_path, []))
        after = SeverityCounts.of(filtered)

        self._by_file[file_path] = filtered
        self._counts = self._counts - before + after
        logger.debug(f"Stored {len(filtered)}/{len(diagnostics)} diagnostics for {file_path}")

    def clear_diagnostics(self, uri: str) -> None:
        """Drop the diagnostics of one file."""
        file_path = uri_to_file_path(uri)
        previous = self._by_file.pop(file_path, None)
        if previous is None:
            return
        self._counts = self._counts - SeverityCounts.of(previous)

    def clear_all(self) -> None:
        self._by_file = {}
        self._counts = SeverityCounts()

    def get_diagnostics(self, file_path: str) -> List[LspDiagnostic]:
        """Get the stored diagnostics of a file (empty if none)."""
        return list(self._by_file.get(file_path, []))

    def attach(self, manager: LSPSessionManager) -> Unsubscribe:
        """Feed diagnostics published through a session manager into this aggregator."""
        return manager.on_diagnostics(self.set_diagnostics)
