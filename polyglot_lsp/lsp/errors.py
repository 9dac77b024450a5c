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

"""Exceptions raised by the LSP session engine."""

from typing import Optional


class LSPError(Exception):
    """Base class for all LSP client errors."""


class ServerUnavailable(LSPError):
    """No server binary for the language and no download is offered."""

    def __init__(self, language: str, install_hint: Optional[str] = None):
        self.language = language
        self.install_hint = install_hint
        message = f"LSP server for {language} is not installed."
        if install_hint:
            message += f" Please install: {install_hint}"
        super().__init__(message)


class ServerNotInstalled(LSPError):
    """Server can be downloaded, but only on explicit request.

    Call ``LSPSessionManager.download_server(language)`` and start again.
    """

    def __init__(self, language: str, download_url: Optional[str] = None):
        self.language = language
        self.download_url = download_url
        super().__init__(
            f"LSP server for {language} is not installed. "
            f"Call download_server('{language}') to install it."
        )


class SessionStartError(LSPError):
    """The process layer reported that the server failed to start."""

    def __init__(self, language: str, reason: Optional[str] = None):
        self.language = language
        self.reason = reason
        super().__init__(reason or f"Failed to start LSP server for {language}")


class NotInitialized(LSPError):
    """Operation attempted on a session that has not completed its handshake."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Server not initialized: {session_id}")


class RequestTimeout(LSPError, TimeoutError):
    """No response arrived within the timeout window."""

    def __init__(self, method: str, timeout: Optional[float] = None):
        self.method = method
        self.timeout = timeout
        super().__init__(f"LSP request timeout: {method}")


class ProtocolError(LSPError):
    """The server answered with a JSON-RPC error envelope."""

    def __init__(self, message: str, code: Optional[int] = None):
        self.code = code
        super().__init__(f"LSP error: {message}")


class TransportError(LSPError):
    """Handing a message to the process layer failed."""


class MalformedMessage(LSPError):
    """An inbound payload could not be decoded into a response or notification."""

    def __init__(self, raw: str, reason: str):
        self.raw = raw
        self.reason = reason
        super().__init__(f"Malformed LSP message ({reason}): {raw[:100]}")


class RequestCancelled(LSPError):
    """A pending request was rejected because its session is going away."""
