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

"""Request correlation for JSON-RPC over an asynchronous channel.

Outbound requests get a process-unique, increasing id. Each id owns one
pending entry (a future plus a timeout timer) that is settled exactly once:
by the matching response, by its timer, or by ``cancel_all`` at shutdown.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from polyglot_lsp.lsp.errors import RequestCancelled, RequestTimeout

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30.0


@dataclass
class PendingRequest:
    """One outstanding request."""

    request_id: int
    method: str
    future: asyncio.Future
    timer: Optional[asyncio.TimerHandle] = None
    session_id: Optional[str] = None


class PendingRequests:
    """Correlation engine mapping request ids to waiting callers."""

    def __init__(self, default_timeout: float = DEFAULT_REQUEST_TIMEOUT):
        """Initialize the engine.

        Args:
            default_timeout: Seconds to wait for a response when
                ``register`` is not given an explicit timeout
        """
        self.default_timeout = default_timeout
        self._last_id = 0
        self._pending: Dict[int, PendingRequest] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    def next_id(self) -> int:
        """Return the next request id."""
        self._last_id += 1
        return self._last_id

    def register(
        self,
        request_id: int,
        method: str,
        timeout: Optional[float] = None,
        session_id: Optional[str] = None,
    ) -> asyncio.Future:
        """Track a request and arm its timeout.

        Args:
            request_id: Id obtained from ``next_id``
            method: Method name, used in timeout errors
            timeout: Seconds before the request fails with ``RequestTimeout``
            session_id: Owning session, for scoped cancellation

        Returns:
            Future settled with the result or the failure
        """
        if request_id in self._pending:
            raise ValueError(f"Request id already pending: {request_id}")

        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()
        delay = self.default_timeout if timeout is None else timeout

        entry = PendingRequest(
            request_id=request_id,
            method=method,
            future=future,
            session_id=session_id,
        )
        entry.timer = loop.call_later(delay, self._expire, request_id, delay)
        self._pending[request_id] = entry

        # A caller that gives up (task cancelled) releases the entry at once
        future.add_done_callback(lambda f: self._on_future_done(request_id, f))
        return future

    def resolve(self, request_id: Any, result: Any) -> bool:
        """Complete a pending request with a result.

        Returns:
            False if the id was not pending (the response is dropped)
        """
        entry = self._take(request_id)
        if entry is None:
            logger.warning(f"Received response for unknown request: {request_id}")
            return False
        if not entry.future.done():
            entry.future.set_result(result)
        return True

    def reject(self, request_id: Any, error: BaseException) -> bool:
        """Fail a pending request.

        Returns:
            False if the id was not pending (the error is dropped)
        """
        entry = self._take(request_id)
        if entry is None:
            logger.warning(f"Received error for unknown request: {request_id}")
            return False
        if not entry.future.done():
            entry.future.set_exception(error)
        return True

    def cancel_all(self, reason: str, session_id: Optional[str] = None) -> int:
        """Reject every pending request, or only those of one session.

        Args:
            reason: Message of the ``RequestCancelled`` given to waiters
            session_id: Restrict cancellation to this session

        Returns:
            Number of requests rejected
        """
        if session_id is None:
            ids = list(self._pending)
        else:
            ids = [rid for rid, entry in self._pending.items() if entry.session_id == session_id]

        for request_id in ids:
            entry = self._take(request_id)
            if entry is not None and not entry.future.done():
                entry.future.set_exception(RequestCancelled(reason))

        if ids:
            logger.debug(f"Cancelled {len(ids)} pending requests: {reason}")
        return len(ids)

    def method_of(self, request_id: Any) -> Optional[str]:
        entry = self._pending.get(request_id)
        return entry.method if entry else None

    def _take(self, request_id: Any) -> Optional[PendingRequest]:
        entry = self._pending.pop(request_id, None)
        if entry is not None and entry.timer is not None:
            entry.timer.cancel()
        return entry

    def _expire(self, request_id: int, timeout: float) -> None:
        entry = self._take(request_id)
        if entry is None:
            return
        logger.warning(f"LSP request {entry.method} ({request_id}) timed out after {timeout}s")
        if not entry.future.done():
            entry.future.set_exception(RequestTimeout(entry.method, timeout))

    def _on_future_done(self, request_id: int, future: asyncio.Future) -> None:
        if future.cancelled():
            self._take(request_id)
