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

"""JSON-RPC 2.0 envelopes and Content-Length framing."""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from polyglot_lsp.lsp.errors import MalformedMessage

JSONRPC_VERSION = "2.0"


@dataclass
class ResponseMessage:
    """Response to a request previously sent by the client."""

    id: Any
    result: Any = None
    error: Optional[Dict[str, Any]] = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


@dataclass
class NotificationMessage:
    """Server-initiated message.

    ``id`` is set when the server sent a request rather than a plain
    notification; the client does not answer those.
    """

    method: str
    params: Any = None
    id: Any = None


InboundMessage = Union[ResponseMessage, NotificationMessage]


def build_request(request_id: int, method: str, params: Any) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "method": method, "params": params}


def build_notification(method: str, params: Any) -> Dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "method": method, "params": params}


def encode_message(message: Dict[str, Any]) -> str:
    return json.dumps(message)


def decode_message(raw: Union[str, bytes]) -> InboundMessage:
    """Decode an inbound payload into a response or a notification.

    A non-null ``id`` without a ``method`` is a response; any payload with a
    ``method`` is a notification. Everything else is malformed.

    Raises:
        MalformedMessage: If the payload is not JSON or matches neither shape
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedMessage(text, f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedMessage(text, "not a JSON object")

    method = data.get("method")
    if method is not None:
        if not isinstance(method, str):
            raise MalformedMessage(text, "method is not a string")
        return NotificationMessage(method=method, params=data.get("params"), id=data.get("id"))

    if data.get("id") is not None:
        if isinstance(data["id"], bool) or not isinstance(data["id"], (int, str)):
            raise MalformedMessage(text, "id is neither a number nor a string")
        error = data.get("error")
        if error is not None and not isinstance(error, dict):
            raise MalformedMessage(text, "error is not an object")
        return ResponseMessage(id=data["id"], result=data.get("result"), error=error)

    raise MalformedMessage(text, "neither a response nor a notification")


def encode_frame(message: str) -> bytes:
    """Wrap a serialized message with a Content-Length header."""
    body = message.encode("utf-8")
    header = f"Content-Length: {len(body)}\r\n\r\n".encode("ascii")
    return header + body


def parse_frame(buffer: bytes) -> Tuple[Optional[str], bytes]:
    """Parse one framed message from the buffer.

    Returns:
        Tuple of (message text or None, remaining buffer)
    """
    header_end = buffer.find(b"\r\n\r\n")
    if header_end == -1:
        return None, buffer

    header = buffer[:header_end].decode("ascii", errors="replace")
    content_length = 0

    for line in header.split("\r\n"):
        if line.lower().startswith("content-length:"):
            try:
                content_length = int(line.split(":", 1)[1].strip())
            except ValueError:
                content_length = 0
            break

    content_start = header_end + 4
    if content_length <= 0:
        # Unusable header; drop it and resync on the next one
        return None, buffer[content_start:]

    content_end = content_start + content_length
    if len(buffer) < content_end:
        return None, buffer

    content = buffer[content_start:content_end].decode("utf-8", errors="replace")
    return content, buffer[content_end:]
