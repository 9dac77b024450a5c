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

"""Observer registry used for notification fan-out."""

import logging
from typing import Any, Callable, List

logger = logging.getLogger(__name__)

Unsubscribe = Callable[[], None]


class CallbackRegistry:
    """Set of subscribers that are all called on every emit.

    A subscriber that raises is logged and skipped; the rest still run.
    """

    def __init__(self, name: str):
        self.name = name
        self._callbacks: List[Callable[..., Any]] = []

    def __len__(self) -> int:
        return len(self._callbacks)

    def subscribe(self, callback: Callable[..., Any]) -> Unsubscribe:
        """Add a subscriber.

        Returns:
            Function removing the subscriber; safe to call more than once
        """
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def emit(self, *args: Any) -> None:
        # Snapshot so subscribers may unsubscribe while being called
        for callback in list(self._callbacks):
            try:
                callback(*args)
            except Exception as e:
                logger.error(f"{self.name} callback error: {e}")

    def clear(self) -> None:
        self._callbacks.clear()
