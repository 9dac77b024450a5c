# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for LSP value types, URI conversion and definition normalization."""

import pytest

from polyglot_lsp.lsp.manager import normalize_definition
from polyglot_lsp.lsp.types import (
    Hover,
    Location,
    Position,
    Range,
    file_path_to_uri,
    severity_to_string,
    uri_to_file_path,
)


def _range(line: int) -> dict:
    return {"start": {"line": line, "character": 1}, "end": {"line": line, "character": 4}}


class TestUriConversion:
    """File paths and file URIs convert both ways."""

    @pytest.mark.parametrize(
        "path",
        [
            "/home/user/project/main.py",
            "/home/user/my project/main file.py",
            "/home/user/my project/file (1).ts",
            "/tmp/100%/a#b?.ts",
            "/srv/ünïcode/módulo.rs",
        ],
    )
    def test_posix_round_trip(self, path):
        uri = file_path_to_uri(path)
        assert uri.startswith("file:///")
        assert uri_to_file_path(uri) == path

    def test_spaces_are_percent_encoded(self):
        assert file_path_to_uri("/a b/c.py") == "file:///a%20b/c.py"

    def test_windows_path(self):
        uri = file_path_to_uri("C:\\Users\\dev\\app.ts")
        assert uri == "file:///C:/Users/dev/app.ts"
        assert uri_to_file_path(uri) == "C:/Users/dev/app.ts"

    @pytest.mark.parametrize(
        "uri",
        ["file:///already/a/uri.py", "untitled:Untitled-1", "https://example.com/x.ts"],
    )
    def test_existing_uri_passes_through(self, uri):
        assert file_path_to_uri(uri) == uri

    def test_non_file_uri_returned_unchanged(self):
        assert uri_to_file_path("untitled:Untitled-1") == "untitled:Untitled-1"


class TestSeverity:
    @pytest.mark.parametrize(
        "value,name",
        [(1, "error"), (2, "warning"), (3, "info"), (4, "hint"), (9, "info"), (None, "info")],
    )
    def test_names(self, value, name):
        assert severity_to_string(value) == name


class TestHover:
    def test_markup_content(self):
        hover = Hover.from_dict({"contents": {"kind": "markdown", "value": "**int**"}})
        assert hover.contents == "**int**"
        assert hover.range is None

    def test_marked_string_list(self):
        hover = Hover.from_dict(
            {"contents": ["plain", {"language": "python", "value": "x: int"}], "range": _range(2)}
        )
        assert hover.contents == "plain\n\nx: int"
        assert hover.range.start == Position(line=2, character=1)


class TestNormalizeDefinition:
    """Every definition result shape becomes a list of locations or None."""

    def test_null_and_empty(self):
        assert normalize_definition(None) is None
        assert normalize_definition([]) is None

    def test_single_location(self):
        result = normalize_definition({"uri": "file:///a.py", "range": _range(3)})
        assert result == [Location(uri="file:///a.py", range=Range.from_dict(_range(3)))]

    def test_single_location_link(self):
        result = normalize_definition(
            {
                "targetUri": "file:///b.py",
                "targetRange": _range(10),
                "targetSelectionRange": _range(11),
            }
        )
        assert result == [Location(uri="file:///b.py", range=Range.from_dict(_range(11)))]

    def test_mixed_list(self):
        result = normalize_definition(
            [
                {"uri": "file:///a.py", "range": _range(1)},
                {
                    "targetUri": "file:///b.py",
                    "targetRange": _range(5),
                    "targetSelectionRange": _range(6),
                },
            ]
        )
        assert [loc.uri for loc in result] == ["file:///a.py", "file:///b.py"]
        assert result[1].range.start.line == 6

    def test_location_round_trip_dict(self):
        data = {"uri": "file:///a.py", "range": _range(1)}
        assert Location.from_dict(data).to_dict() == data
