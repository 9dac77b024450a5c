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

"""Diagnostics aggregation with incremental severity counts."""

from polyglot_lsp.diagnostics.aggregator import DiagnosticsAggregator, to_lsp_diagnostic
from polyglot_lsp.diagnostics.models import (
    DiagnosticPosition,
    DiagnosticRange,
    LspDiagnostic,
    SeverityCounts,
)
from polyglot_lsp.diagnostics.report import render_file, render_summary

__all__ = [
    "DiagnosticsAggregator",
    "DiagnosticPosition",
    "DiagnosticRange",
    "LspDiagnostic",
    "SeverityCounts",
    "render_file",
    "render_summary",
    "to_lsp_diagnostic",
]
