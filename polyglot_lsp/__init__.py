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

"""Polyglot LSP - client-side session engine for language servers.

Manages one session per language and project root over an external process
layer, correlates requests with responses, keeps documents in sync, routes
lookups across files, and aggregates published diagnostics.
"""

from polyglot_lsp.diagnostics import DiagnosticsAggregator, LspDiagnostic, SeverityCounts
from polyglot_lsp.lsp import (
    ConnectionRegistry,
    CrossFileLookup,
    LSPSessionManager,
    LSPSettings,
    PendingRequests,
    ServerProcessLayer,
    StdioProcessLayer,
)
from polyglot_lsp.service import DocumentBinding, LSPService
from polyglot_lsp.status import ServerStatusTracker

__version__ = "0.1.0"

__all__ = [
    "LSPService",
    "DocumentBinding",
    "LSPSessionManager",
    "LSPSettings",
    "PendingRequests",
    "ConnectionRegistry",
    "CrossFileLookup",
    "ServerProcessLayer",
    "StdioProcessLayer",
    "DiagnosticsAggregator",
    "LspDiagnostic",
    "SeverityCounts",
    "ServerStatusTracker",
]
