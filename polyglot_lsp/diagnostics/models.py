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

"""Diagnostic models kept by the aggregator."""

from typing import Iterable, Literal, Optional

from pydantic import BaseModel, Field

SeverityName = Literal["error", "warning", "info", "hint"]


class DiagnosticPosition(BaseModel):
    """Zero-based line/column."""

    line: int
    column: int


class DiagnosticRange(BaseModel):
    start: DiagnosticPosition
    end: DiagnosticPosition


class LspDiagnostic(BaseModel):
    """A diagnostic in the shape consumers work with."""

    id: str = Field(description="Stable id: lsp-<file>-<index>")
    severity: SeverityName = Field(description="Severity name")
    message: str = Field(description="Diagnostic message")
    range: DiagnosticRange = Field(description="Location in the file")
    source: Literal["lsp"] = Field(default="lsp", description="Producer of the diagnostic")
    code: Optional[str] = Field(default=None, description="Server-specific diagnostic code")


class SeverityCounts(BaseModel):
    """Number of diagnostics per severity."""

    errors: int = 0
    warnings: int = 0
    info: int = 0
    hints: int = 0

    @classmethod
    def of(cls, diagnostics: Iterable[LspDiagnostic]) -> "SeverityCounts":
        counts = cls()
        for d in diagnostics:
            if d.severity == "error":
                counts.errors += 1
            elif d.severity == "warning":
                counts.warnings += 1
            elif d.severity == "info":
                counts.info += 1
            elif d.severity == "hint":
                counts.hints += 1
        return counts

    def __add__(self, other: "SeverityCounts") -> "SeverityCounts":
        return SeverityCounts(
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings,
            info=self.info + other.info,
            hints=self.hints + other.hints,
        )

    def __sub__(self, other: "SeverityCounts") -> "SeverityCounts":
        return SeverityCounts(
            errors=self.errors - other.errors,
            warnings=self.warnings - other.warnings,
            info=self.info - other.info,
            hints=self.hints - other.hints,
        )

    @property
    def total(self) -> int:
        return self.errors + self.warnings + self.info + self.hints
