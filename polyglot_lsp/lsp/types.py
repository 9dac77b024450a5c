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

"""Core LSP value types and helpers.

Covers the subset of the Language Server Protocol used by the session
engine: positions, ranges, locations, location links, diagnostics and hover
results, plus file path <-> ``file://`` URI conversion.
"""

import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote, unquote


class LSPMethod:
    """LSP method names used by the client."""

    INITIALIZE = "initialize"
    INITIALIZED = "initialized"
    SHUTDOWN = "shutdown"
    EXIT = "exit"
    DID_OPEN = "textDocument/didOpen"
    DID_CHANGE = "textDocument/didChange"
    DID_CLOSE = "textDocument/didClose"
    HOVER = "textDocument/hover"
    DEFINITION = "textDocument/definition"
    REFERENCES = "textDocument/references"
    DOCUMENT_SYMBOL = "textDocument/documentSymbol"
    PUBLISH_DIAGNOSTICS = "textDocument/publishDiagnostics"
    DID_CHANGE_CONFIGURATION = "workspace/didChangeConfiguration"


class DiagnosticSeverity(IntEnum):
    """Diagnostic severity as encoded on the wire."""

    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


_SEVERITY_NAMES = {
    DiagnosticSeverity.ERROR: "error",
    DiagnosticSeverity.WARNING: "warning",
    DiagnosticSeverity.INFORMATION: "info",
    DiagnosticSeverity.HINT: "hint",
}


def severity_to_string(severity: Optional[int]) -> str:
    """Map a numeric severity to its short name, ``info`` for unknown values."""
    try:
        return _SEVERITY_NAMES[DiagnosticSeverity(severity)]
    except (ValueError, TypeError):
        return "info"


@dataclass(frozen=True)
class Position:
    """Zero-based line/character position."""

    line: int
    character: int

    def to_dict(self) -> Dict[str, int]:
        return {"line": self.line, "character": self.character}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Position":
        return cls(line=int(data["line"]), character=int(data["character"]))


@dataclass(frozen=True)
class Range:
    """Half-open range between two positions."""

    start: Position
    end: Position

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Range":
        return cls(start=Position.from_dict(data["start"]), end=Position.from_dict(data["end"]))


@dataclass(frozen=True)
class Location:
    """A range inside a document identified by URI."""

    uri: str
    range: Range

    def to_dict(self) -> Dict[str, Any]:
        return {"uri": self.uri, "range": self.range.to_dict()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Location":
        return cls(uri=data["uri"], range=Range.from_dict(data["range"]))


@dataclass(frozen=True)
class LocationLink:
    """Definition target carrying a separate selection range."""

    target_uri: str
    target_range: Range
    target_selection_range: Range
    origin_selection_range: Optional[Range] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocationLink":
        target_range = data.get("targetRange") or data["targetSelectionRange"]
        origin = data.get("originSelectionRange")
        return cls(
            target_uri=data["targetUri"],
            target_range=Range.from_dict(target_range),
            target_selection_range=Range.from_dict(data["targetSelectionRange"]),
            origin_selection_range=Range.from_dict(origin) if origin else None,
        )

    def to_location(self) -> Location:
        """Flatten to a plain location pointing at the selection range."""
        return Location(uri=self.target_uri, range=self.target_selection_range)


@dataclass
class Diagnostic:
    """A diagnostic as published by a server."""

    range: Range
    message: str
    severity: Optional[int] = None
    code: Optional[Union[int, str]] = None
    source: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Diagnostic":
        return cls(
            range=Range.from_dict(data["range"]),
            message=str(data.get("message", "")),
            severity=data.get("severity"),
            code=data.get("code"),
            source=data.get("source"),
        )


@dataclass
class Hover:
    """Hover result with contents normalized to plain text."""

    contents: str
    range: Optional[Range] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Hover":
        rng = data.get("range")
        return cls(
            contents=_hover_text(data.get("contents")),
            range=Range.from_dict(rng) if rng else None,
        )


def _hover_text(contents: Any) -> str:
    # MarkupContent, MarkedString, or a list of MarkedString
    if contents is None:
        return ""
    if isinstance(contents, str):
        return contents
    if isinstance(contents, dict):
        return str(contents.get("value", ""))
    if isinstance(contents, list):
        return "\n\n".join(part for part in (_hover_text(c) for c in contents) if part)
    return str(contents)


# Safe set mirrors what ECMAScript's encodeURI leaves alone, minus '?' and '#'
# which would otherwise be read back as query/fragment delimiters.
_URI_SAFE = "/:@&=+$,;!~*'()"
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]+:")
_DRIVE_RE = re.compile(r"^[A-Za-z]:/")
_DRIVE_URI_PATH_RE = re.compile(r"^/[A-Za-z]:")


def file_path_to_uri(path: str) -> str:
    """Convert an absolute POSIX or Windows path to a ``file://`` URI.

    Strings that already carry a URI scheme (``file://``, ``untitled:``,
    ``https://`` ...) are returned unchanged. A single drive letter such as
    ``C:`` is not treated as a scheme.

    Args:
        path: Absolute file path

    Returns:
        Percent-encoded file URI
    """
    if _SCHEME_RE.match(path):
        return path

    normalized = path.replace("\\", "/")
    if _DRIVE_RE.match(normalized):
        normalized = "/" + normalized

    return "file://" + quote(normalized, safe=_URI_SAFE)


def uri_to_file_path(uri: str) -> str:
    """Convert a ``file://`` URI back to a file path.

    Non-file strings are returned unchanged. Windows drive paths come back
    with forward slashes (``C:/Users/...``).
    """
    if not uri.startswith("file://"):
        return uri

    path = unquote(uri[len("file://") :])
    if _DRIVE_URI_PATH_RE.match(path):
        path = path[1:]
    return path


def locations_from_list(items: List[Dict[str, Any]]) -> List[Location]:
    """Parse a list of location or location-link dicts into locations."""
    locations = []
    for item in items:
        if "targetUri" in item:
            locations.append(LocationLink.from_dict(item).to_location())
        else:
            locations.append(Location.from_dict(item))
    return locations
