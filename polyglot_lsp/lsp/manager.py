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

"""LSP session manager.

Runs any number of language server sessions (one per language and project
root) over a ``ServerProcessLayer``. Requests are multiplexed by id through
``PendingRequests``; server notifications are fanned out to subscribers.

Usage:
    async with LSPSessionManager(process_layer) as manager:
        session_id = await manager.start("python", "/work/project")
        await manager.open_document(session_id, "/work/project/app.py", "python", text)
        locations = await manager.definition(session_id, "/work/project/app.py", 10, 4)
    # All sessions stopped on exit
"""

import asyncio
import logging
from pathlib import PurePath
from typing import Any, Callable, Dict, List, Optional, Tuple

from polyglot_lsp.lsp.config import (
    LSPSettings,
    get_language_display_name,
    get_server_config,
)
from polyglot_lsp.lsp.connections import ConnectionRegistry
from polyglot_lsp.lsp.correlation import PendingRequests
from polyglot_lsp.lsp.errors import (
    LSPError,
    MalformedMessage,
    NotInitialized,
    ProtocolError,
    ServerNotInstalled,
    ServerUnavailable,
    SessionStartError,
    TransportError,
)
from polyglot_lsp.lsp.events import CallbackRegistry, Unsubscribe
from polyglot_lsp.lsp.jsonrpc import (
    NotificationMessage,
    ResponseMessage,
    build_notification,
    build_request,
    decode_message,
    encode_message,
)
from polyglot_lsp.lsp.session import Session, SessionRegistry, SessionState, normalize_root_path
from polyglot_lsp.lsp.transport import ServerAvailability, ServerProcessLayer
from polyglot_lsp.lsp.types import (
    Hover,
    Location,
    LocationLink,
    LSPMethod,
    file_path_to_uri,
    locations_from_list,
)
from polyglot_lsp.status import (
    PendingDownload,
    ServerRunState,
    ServerStatusEntry,
    ServerStatusTracker,
)

logger = logging.getLogger(__name__)

DiagnosticsCallback = Callable[[str, List[Dict[str, Any]]], None]
NotificationCallback = Callable[[str, Any], None]

# Failures that degrade a query to "no result"
_QUERY_ERRORS = (LSPError, KeyError, TypeError, ValueError, AttributeError)


def normalize_definition(result: Any) -> Optional[List[Location]]:
    """Normalize any definition result shape to a list of locations.

    Accepts null, a single location, a single location link, or a list
    mixing locations and location links. Links are flattened to their
    target URI and target selection range.

    Returns:
        List of locations, or None when the result is null or empty
    """
    if not result:
        return None
    if isinstance(result, dict):
        if "targetUri" in result:
            return [LocationLink.from_dict(result).to_location()]
        return [Location.from_dict(result)]
    if isinstance(result, list):
        return locations_from_list(result) or None
    logger.debug(f"Unexpected definition result type: {type(result).__name__}")
    return None


def _workspace_name(root_path: str) -> str:
    name = PurePath(root_path.replace("\\", "/").rstrip("/")).name
    return name or "workspace"


class LSPSessionManager:
    """Manages language server sessions over a process layer.

    Owns the session registry, the pending-request table and the
    cross-file connection registry; all three are only mutated here.
    """

    def __init__(
        self,
        process_layer: ServerProcessLayer,
        settings: Optional[LSPSettings] = None,
        connections: Optional[ConnectionRegistry] = None,
        status: Optional[ServerStatusTracker] = None,
    ):
        """Initialize the manager.

        Args:
            process_layer: Starts/stops servers and carries raw messages
            settings: Client settings (timeouts, client identity)
            connections: Cross-file registry purged when sessions stop
            status: Tracker updated on lifecycle transitions
        """
        self._layer = process_layer
        self.settings = settings or LSPSettings()
        self.connections = connections or ConnectionRegistry()
        self.status = status or ServerStatusTracker()

        self._sessions = SessionRegistry()
        self._pending = PendingRequests(default_timeout=self.settings.request_timeout)
        self._starting: Dict[Tuple[str, str], "asyncio.Future[str]"] = {}

        self._diagnostics_callbacks = CallbackRegistry("Diagnostics")
        self._notification_callbacks = CallbackRegistry("Notification")

        self._unsubscribe_inbound: Optional[Callable[[], None]] = None
        self._initialized = False
        self._closing = False

    async def __aenter__(self) -> "LSPSessionManager":
        await self.init()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.dispose()

    @property
    def sessions(self) -> SessionRegistry:
        return self._sessions

    @property
    def pending(self) -> PendingRequests:
        return self._pending

    async def init(self) -> None:
        """Subscribe to inbound messages. Safe to call repeatedly."""
        if self._initialized:
            return

        logger.info("Initializing LSP session manager")
        self._unsubscribe_inbound = self._layer.subscribe(self.on_message)
        self._initialized = True

    async def dispose(self) -> None:
        """Stop every session and drop the inbound subscription."""
        logger.info("Cleaning up LSP session manager")
        self._closing = True

        # Includes sessions still in their handshake, which then fail fast
        for session_id in self._sessions.ids():
            await self.stop(session_id)

        # Starts still waiting on the process layer stop their own process
        starting = list(self._starting.values())
        if starting:
            await asyncio.gather(*starting, return_exceptions=True)

        if self._unsubscribe_inbound is not None:
            self._unsubscribe_inbound()
            self._unsubscribe_inbound = None

        self._pending.cancel_all("LSP service shutting down")
        self._initialized = False
        self._closing = False

    # Server availability

    async def get_server_status(self, language: str) -> ServerAvailability:
        return await self._layer.get_status(language)

    async def download_server(self, language: str) -> str:
        """Download the server for a language. Only ever called explicitly.

        Returns:
            Install path reported by the process layer
        """
        logger.info(f"Downloading server for {language}")
        path = await self._layer.download_server(language)
        self.status.remove_pending_download(language)
        return path

    # Session lifecycle

    def get_server(self, language: str, root_path: str) -> Optional[str]:
        """Get the live session id for a language and root, if any."""
        session = self._sessions.find(language, normalize_root_path(root_path))
        return session.session_id if session else None

    def get_session(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    async def start(self, language: str, root_path: str) -> str:
        """Start (or reuse) the session for a language and project root.

        Args:
            language: Server language, e.g. "python"
            root_path: Project root directory

        Returns:
            Session id of a ready session

        Raises:
            ServerUnavailable: No server and no download offered
            ServerNotInstalled: Server can be downloaded on request
            SessionStartError: The process layer could not start the server
            LSPError: The handshake failed
        """
        if self._closing:
            raise SessionStartError(language, "LSP service shutting down")
        await self.init()

        root = normalize_root_path(root_path)
        existing = self._sessions.find(language, root)
        if existing is not None and existing.initialized:
            logger.info(f"Reusing existing server: {existing.session_id}")
            return existing.session_id

        key = (language, root)
        starting = self._starting.get(key)
        if starting is None:
            starting = asyncio.ensure_future(self._start_session(language, root))
            self._starting[key] = starting
            starting.add_done_callback(lambda f: self._forget_start(key, f))
        else:
            logger.info(f"Waiting for server already starting for {language} in {root}")

        return await asyncio.shield(starting)

    def _forget_start(self, key: Tuple[str, str], future: "asyncio.Future[str]") -> None:
        if self._starting.get(key) is future:
            del self._starting[key]
        if not future.cancelled():
            # Retrieved here so a start nobody awaits anymore is not reported as lost
            future.exception()

    async def _start_session(self, language: str, root: str) -> str:
        logger.info(f"Starting server for {language} in {root}")

        if not await self._layer.check_available(language):
            availability = await self._layer.get_status(language)
            config = get_server_config(language)
            if availability.can_download:
                self.status.add_pending_download(
                    PendingDownload(
                        language=language,
                        language_display_name=get_language_display_name(language),
                        server_name=config.name if config else language,
                        download_url=availability.download_url,
                    )
                )
                raise ServerNotInstalled(language, availability.download_url)
            install_hint = (config.install_command or config.command[0]) if config else None
            raise ServerUnavailable(language, install_hint)

        response = await self._layer.start(language, root)
        if not response.success:
            raise SessionStartError(language, response.error)
        if self._closing:
            # Disposed while the process was starting; nothing will ever route to it
            await self._layer.stop(response.session_id)
            raise SessionStartError(language, "LSP service shutting down")

        stale = self.status.find(language, root)
        if stale is not None:
            self.status.remove(stale.session_id)

        session = Session(session_id=response.session_id, language=language, root_path=root)
        self._sessions.add(session)
        self.status.set_status(
            ServerStatusEntry(
                session_id=session.session_id,
                language=language,
                root_path=root,
                status=ServerRunState.STARTING,
            )
        )

        try:
            await self._initialize_session(session)
        except (Exception, asyncio.CancelledError) as e:
            if session.state in (SessionState.SHUTTING_DOWN, SessionState.STOPPED):
                # stop() ran mid-handshake and already tore the session down
                logger.info(f"Server {session.session_id} stopped during startup")
                raise
            logger.error(f"Handshake with {session.session_id} failed: {e}")
            await self._discard_session(session, reason=f"Handshake failed: {e}")
            self.status.set_status(
                ServerStatusEntry(
                    session_id=session.session_id,
                    language=language,
                    root_path=root,
                    status=ServerRunState.ERROR,
                    error=str(e),
                )
            )
            raise

        if session.state != SessionState.INITIALIZING:
            raise SessionStartError(language, f"Server {session.session_id} stopped during startup")

        session.state = SessionState.READY
        self.status.set_status(
            ServerStatusEntry(
                session_id=session.session_id,
                language=language,
                root_path=root,
                status=ServerRunState.RUNNING,
            )
        )
        logger.info(f"Server started and initialized: {session.session_id}")
        return session.session_id

    async def _initialize_session(self, session: Session) -> None:
        """Run the initialize / initialized handshake."""
        root_uri = file_path_to_uri(session.root_path)
        config = get_server_config(session.language)

        params = {
            "processId": None,
            "clientInfo": {
                "name": self.settings.client_name,
                "version": self.settings.client_version,
            },
            "rootUri": root_uri,
            "rootPath": session.root_path,
            "capabilities": {
                "textDocument": {
                    "synchronization": {"didSave": True},
                    "hover": {"contentFormat": ["markdown", "plaintext"]},
                    "definition": {"linkSupport": True},
                    "references": {},
                    "documentSymbol": {"hierarchicalDocumentSymbolSupport": True},
                    "publishDiagnostics": {
                        "relatedInformation": True,
                        "versionSupport": True,
                        "codeDescriptionSupport": True,
                        "dataSupport": True,
                    },
                },
                "workspace": {"workspaceFolders": True},
            },
            "workspaceFolders": [{"uri": root_uri, "name": _workspace_name(session.root_path)}],
        }
        if config and config.initialization_options:
            params["initializationOptions"] = config.initialization_options

        result = await self.request(session.session_id, LSPMethod.INITIALIZE, params)
        if isinstance(result, dict):
            session.capabilities = result.get("capabilities") or {}
        logger.debug(f"Server capabilities for {session.session_id}: {session.capabilities}")

        await self.notify(session.session_id, LSPMethod.INITIALIZED, {})

        if config and config.settings:
            await self.notify(
                session.session_id,
                LSPMethod.DID_CHANGE_CONFIGURATION,
                {"settings": config.settings},
            )

    async def stop(self, session_id: str) -> None:
        """Shut a session down. Unknown or already-stopping sessions are ignored."""
        session = self._sessions.get(session_id)
        if session is None or session.state in (SessionState.SHUTTING_DOWN, SessionState.STOPPED):
            return

        logger.info(f"Stopping server: {session_id}")
        session.state = SessionState.SHUTTING_DOWN

        try:
            await self.request(
                session_id, LSPMethod.SHUTDOWN, None, timeout=self.settings.shutdown_timeout
            )
            await self.notify(session_id, LSPMethod.EXIT, None)
        except Exception as e:
            logger.warning(f"Error during graceful shutdown of {session_id}: {e}")

        await self._discard_session(session, reason=f"Session {session_id} stopped")
        self.status.set_status(
            ServerStatusEntry(
                session_id=session_id,
                language=session.language,
                root_path=session.root_path,
                status=ServerRunState.STOPPED,
            )
        )
        logger.info(f"Stopped server: {session_id}")

    async def stop_all(self) -> None:
        for session_id in self._sessions.ids():
            await self.stop(session_id)

    async def _discard_session(self, session: Session, reason: str) -> None:
        # Pending requests go first, then the process, then every route to it
        self._pending.cancel_all(reason, session_id=session.session_id)
        try:
            await self._layer.stop(session.session_id)
        except Exception as e:
            logger.warning(f"Error stopping server process {session.session_id}: {e}")
        self.connections.unregister_by_session(session.session_id)
        self._sessions.remove(session.session_id)
        session.state = SessionState.STOPPED

    # Document synchronization

    def _require_ready(self, session_id: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None or not session.initialized:
            raise NotInitialized(session_id)
        return session

    async def open_document(
        self, session_id: str, file_path: str, language_id: str, content: str
    ) -> None:
        """Open a document at version 1 with its full text.

        Raises:
            NotInitialized: Session is unknown or not ready
        """
        session = self._require_ready(session_id)
        uri = file_path_to_uri(file_path)
        version = session.open_document(uri)

        await self.notify(
            session_id,
            LSPMethod.DID_OPEN,
            {
                "textDocument": {
                    "uri": uri,
                    "languageId": language_id,
                    "version": version,
                    "text": content,
                }
            },
        )
        logger.debug(f"Document opened: {file_path}")

    async def change_document(self, session_id: str, file_path: str, content: str) -> None:
        """Send the new full text of a document under the next version.

        Raises:
            NotInitialized: Session is unknown or not ready
        """
        session = self._require_ready(session_id)
        uri = file_path_to_uri(file_path)
        version, was_open = session.bump_version(uri)
        if not was_open:
            logger.warning(f"Change for {file_path} before it was opened, sending version {version}")

        await self.notify(
            session_id,
            LSPMethod.DID_CHANGE,
            {
                "textDocument": {"uri": uri, "version": version},
                "contentChanges": [{"text": content}],
            },
        )

    async def close_document(self, session_id: str, file_path: str) -> None:
        """Close a document. Best effort: never raises."""
        session = self._sessions.get(session_id)
        if session is None or not session.initialized:
            return

        uri = file_path_to_uri(file_path)
        session.close_document(uri)

        try:
            await self.notify(session_id, LSPMethod.DID_CLOSE, {"textDocument": {"uri": uri}})
        except LSPError as e:
            logger.warning(f"Failed to close {file_path}: {e}")
            return
        logger.debug(f"Document closed: {file_path}")

    def get_document_version(self, session_id: str, file_path: str) -> Optional[int]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        return session.document_versions.get(file_path_to_uri(file_path))

    # Requests

    async def request(
        self,
        session_id: str,
        method: str,
        params: Any,
        result_type: Optional[Callable[[Any], Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Send a request and wait for its response.

        Args:
            session_id: Target session
            method: LSP method name
            params: Request parameters
            result_type: Optional converter applied to a non-null result
            timeout: Seconds to wait, defaults to ``settings.request_timeout``

        Raises:
            NotInitialized: Session is unknown
            TransportError: The message could not be handed to the process layer
            RequestTimeout: No response in time
            ProtocolError: The server answered with an error
        """
        if session_id not in self._sessions:
            raise NotInitialized(session_id)

        request_id = self._pending.next_id()
        # Encoded before registering: unserializable params must not leave an entry behind
        message = encode_message(build_request(request_id, method, params))
        future = self._pending.register(request_id, method, timeout=timeout, session_id=session_id)

        try:
            await self._layer.send(session_id, message)
        except Exception as e:
            error = TransportError(f"Failed to send {method}: {e}")
            error.__cause__ = e
            self._pending.reject(request_id, error)

        result = await future
        if result is not None and result_type is not None:
            return result_type(result)
        return result

    async def notify(self, session_id: str, method: str, params: Any) -> None:
        """Send a notification (no response expected)."""
        message = encode_message(build_notification(method, params))
        try:
            await self._layer.send(session_id, message)
        except Exception as e:
            raise TransportError(f"Failed to send {method}: {e}") from e

    def _position_params(self, file_path: str, line: int, character: int) -> Dict[str, Any]:
        return {
            "textDocument": {"uri": file_path_to_uri(file_path)},
            "position": {"line": line, "character": character},
        }

    async def hover(
        self, session_id: str, file_path: str, line: int, character: int
    ) -> Optional[Hover]:
        """Get hover information, or None if unavailable."""
        try:
            return await self.request(
                session_id,
                LSPMethod.HOVER,
                self._position_params(file_path, line, character),
                result_type=Hover.from_dict,
            )
        except _QUERY_ERRORS as e:
            logger.debug(f"Hover request failed: {e}")
            return None

    async def definition(
        self, session_id: str, file_path: str, line: int, character: int
    ) -> Optional[List[Location]]:
        """Get definition locations, or None if unavailable."""
        try:
            return await self.request(
                session_id,
                LSPMethod.DEFINITION,
                self._position_params(file_path, line, character),
                result_type=normalize_definition,
            )
        except _QUERY_ERRORS as e:
            logger.debug(f"Definition request failed: {e}")
            return None

    async def references(
        self,
        session_id: str,
        file_path: str,
        line: int,
        character: int,
        include_declaration: bool = True,
    ) -> Optional[List[Location]]:
        """Get reference locations, or None if unavailable."""
        params = self._position_params(file_path, line, character)
        params["context"] = {"includeDeclaration": include_declaration}
        try:
            return await self.request(
                session_id, LSPMethod.REFERENCES, params, result_type=locations_from_list
            )
        except _QUERY_ERRORS as e:
            logger.debug(f"References request failed: {e}")
            return None

    async def document_symbols(
        self, session_id: str, file_path: str
    ) -> Optional[List[Dict[str, Any]]]:
        """Get the raw document symbols of a file, or None if unavailable."""
        params = {"textDocument": {"uri": file_path_to_uri(file_path)}}
        try:
            return await self.request(session_id, LSPMethod.DOCUMENT_SYMBOL, params)
        except LSPError as e:
            logger.debug(f"Document symbol request failed: {e}")
            return None

    # Subscriptions

    def on_diagnostics(self, callback: DiagnosticsCallback) -> Unsubscribe:
        """Subscribe to published diagnostics as ``callback(uri, diagnostics)``."""
        return self._diagnostics_callbacks.subscribe(callback)

    def on_notification(self, callback: NotificationCallback) -> Unsubscribe:
        """Subscribe to every server notification as ``callback(method, params)``."""
        return self._notification_callbacks.subscribe(callback)

    # Inbound dispatch

    def on_message(self, session_id: str, raw_message: str) -> None:
        """Handle one inbound message from the process layer. Never raises."""
        try:
            message = decode_message(raw_message)
        except MalformedMessage as e:
            logger.error(f"Failed to parse message from {session_id}: {e}")
            return

        if isinstance(message, ResponseMessage):
            self._handle_response(message)
        else:
            self._handle_notification(session_id, message)

    def _handle_response(self, response: ResponseMessage) -> None:
        if response.is_error:
            message = str(response.error.get("message", "Unknown error"))
            method = self._pending.method_of(response.id)
            if method is not None:
                logger.warning(f"Server returned error for {method} ({response.id}): {message}")
            self._pending.reject(response.id, ProtocolError(message, response.error.get("code")))
        else:
            self._pending.resolve(response.id, response.result)

    def _handle_notification(self, session_id: str, notification: NotificationMessage) -> None:
        method = notification.method
        params = notification.params
        logger.debug(f"Server notification from {session_id}: {method}")

        if notification.id is not None:
            logger.debug(f"Ignoring server request {method} ({notification.id})")

        self._notification_callbacks.emit(method, params)

        if method == LSPMethod.PUBLISH_DIAGNOSTICS:
            if not isinstance(params, dict) or not isinstance(params.get("uri"), str):
                logger.error(f"Malformed diagnostics notification from {session_id}")
                return
            diagnostics = params.get("diagnostics") or []
            self._diagnostics_callbacks.emit(params["uri"], diagnostics)
