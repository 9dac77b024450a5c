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

"""Language Server Protocol (LSP) session engine.

This module provides session management, request correlation, document
synchronization and cross-file routing for out-of-process language servers.
"""

from polyglot_lsp.lsp.config import (
    LANGUAGE_SERVERS,
    DiagnosticVisibility,
    LSPServerConfig,
    LSPSettings,
    get_language_for_path,
    get_server_config,
    has_lsp_support,
)
from polyglot_lsp.lsp.connections import Connection, ConnectionRegistry
from polyglot_lsp.lsp.correlation import PendingRequests
from polyglot_lsp.lsp.errors import (
    LSPError,
    MalformedMessage,
    NotInitialized,
    ProtocolError,
    RequestCancelled,
    RequestTimeout,
    ServerNotInstalled,
    ServerUnavailable,
    SessionStartError,
    TransportError,
)
from polyglot_lsp.lsp.lookup import CrossFileLookup
from polyglot_lsp.lsp.manager import LSPSessionManager, normalize_definition
from polyglot_lsp.lsp.session import Session, SessionState
from polyglot_lsp.lsp.transport import (
    ServerAvailability,
    ServerProcessLayer,
    StartResult,
    StdioProcessLayer,
)
from polyglot_lsp.lsp.types import (
    Diagnostic,
    DiagnosticSeverity,
    Hover,
    Location,
    LocationLink,
    LSPMethod,
    Position,
    Range,
    file_path_to_uri,
    severity_to_string,
    uri_to_file_path,
)

__all__ = [
    # Sessions
    "LSPSessionManager",
    "Session",
    "SessionState",
    "PendingRequests",
    "normalize_definition",
    # Routing
    "Connection",
    "ConnectionRegistry",
    "CrossFileLookup",
    # Process layer
    "ServerProcessLayer",
    "ServerAvailability",
    "StartResult",
    "StdioProcessLayer",
    # Configuration
    "LANGUAGE_SERVERS",
    "LSPServerConfig",
    "LSPSettings",
    "DiagnosticVisibility",
    "get_language_for_path",
    "get_server_config",
    "has_lsp_support",
    # Errors
    "LSPError",
    "MalformedMessage",
    "NotInitialized",
    "ProtocolError",
    "RequestCancelled",
    "RequestTimeout",
    "ServerNotInstalled",
    "ServerUnavailable",
    "SessionStartError",
    "TransportError",
    # Types
    "Diagnostic",
    "DiagnosticSeverity",
    "Hover",
    "Location",
    "LocationLink",
    "LSPMethod",
    "Position",
    "Range",
    "file_path_to_uri",
    "severity_to_string",
    "uri_to_file_path",
]
