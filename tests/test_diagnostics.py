# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for diagnostics aggregation and rendering."""

import pytest
from rich.console import Console

from polyglot_lsp.diagnostics import (
    DiagnosticsAggregator,
    SeverityCounts,
    render_file,
    render_summary,
    to_lsp_diagnostic,
)
from polyglot_lsp.lsp.config import DiagnosticVisibility

from conftest import make_diagnostic

A_URI = "file:///work/project/a.py"
B_URI = "file:///work/project/b.py"
A_PATH = "/work/project/a.py"


class TestConversion:
    def test_fields(self):
        raw = make_diagnostic(2, "unused import", line=7)
        raw["code"] = 401
        diagnostic = to_lsp_diagnostic(A_PATH, 3, raw)

        assert diagnostic.id == f"lsp-{A_PATH}-3"
        assert diagnostic.severity == "warning"
        assert diagnostic.message == "unused import"
        assert diagnostic.range.start.line == 7
        assert diagnostic.range.end.column == 5
        assert diagnostic.source == "lsp"
        assert diagnostic.code == "401"

    def test_missing_severity_is_error(self):
        assert to_lsp_diagnostic(A_PATH, 0, make_diagnostic(None)).severity == "error"


class TestAggregator:
    """Per-file replacement with incremental totals."""

    def test_totals_track_replacements(self):
        aggregator = DiagnosticsAggregator()

        aggregator.set_diagnostics(A_URI, [make_diagnostic(1), make_diagnostic(1)])
        aggregator.set_diagnostics(B_URI, [make_diagnostic(2)])
        assert aggregator.counts == SeverityCounts(errors=2, warnings=1)

        aggregator.set_diagnostics(A_URI, [make_diagnostic(3)])
        assert aggregator.counts == SeverityCounts(warnings=1, info=1)

        aggregator.set_diagnostics(B_URI, [])
        assert aggregator.counts == SeverityCounts(info=1)
        assert aggregator.get_diagnostics("/work/project/b.py") == []

    def test_totals_equal_sum_of_files(self):
        aggregator = DiagnosticsAggregator(DiagnosticVisibility(show_hints=True))
        pushes = [
            (A_URI, [make_diagnostic(1), make_diagnostic(4)]),
            (B_URI, [make_diagnostic(2), make_diagnostic(2), make_diagnostic(3)]),
            (A_URI, [make_diagnostic(4)]),
            (B_URI, [make_diagnostic(1)]),
        ]
        for uri, diagnostics in pushes:
            aggregator.set_diagnostics(uri, diagnostics)

        expected = SeverityCounts()
        for file_path in aggregator.files:
            expected = expected + SeverityCounts.of(aggregator.get_diagnostics(file_path))
        assert aggregator.counts == expected
        assert aggregator.counts.total == 2

    def test_stored_under_file_path(self):
        aggregator = DiagnosticsAggregator()
        aggregator.set_diagnostics(A_URI, [make_diagnostic(1, "boom")])

        assert aggregator.files == [A_PATH]
        assert aggregator.get_diagnostics(A_PATH)[0].message == "boom"

    def test_hints_hidden_by_default(self):
        aggregator = DiagnosticsAggregator()
        aggregator.set_diagnostics(A_URI, [make_diagnostic(4), make_diagnostic(1)])

        assert [d.severity for d in aggregator.get_diagnostics(A_PATH)] == ["error"]
        assert aggregator.counts.hints == 0

    def test_visibility_filter(self):
        visibility = DiagnosticVisibility(show_warnings=False, show_info=False)
        aggregator = DiagnosticsAggregator(visibility)
        aggregator.set_diagnostics(
            A_URI, [make_diagnostic(1), make_diagnostic(2), make_diagnostic(3)]
        )
        assert aggregator.counts == SeverityCounts(errors=1)

    def test_malformed_entries_skipped(self):
        aggregator = DiagnosticsAggregator()
        aggregator.set_diagnostics(A_URI, [{"message": "no range"}, make_diagnostic(1)])
        assert aggregator.counts == SeverityCounts(errors=1)

    def test_clear(self):
        aggregator = DiagnosticsAggregator()
        aggregator.set_diagnostics(A_URI, [make_diagnostic(1)])
        aggregator.set_diagnostics(B_URI, [make_diagnostic(2)])

        aggregator.clear_diagnostics(A_URI)
        aggregator.clear_diagnostics("file:///never/seen.py")
        assert aggregator.counts == SeverityCounts(warnings=1)

        aggregator.clear_all()
        assert aggregator.counts == SeverityCounts()
        assert aggregator.files == []

    def test_counts_are_a_copy(self):
        aggregator = DiagnosticsAggregator()
        aggregator.counts.errors = 10
        assert aggregator.counts.errors == 0

    @pytest.mark.asyncio
    async def test_attached_to_manager(self, manager, layer):
        aggregator = DiagnosticsAggregator()
        await manager.init()
        detach = aggregator.attach(manager)

        layer.publish_diagnostics("python-1", A_URI, [make_diagnostic(1)])
        detach()
        layer.publish_diagnostics("python-1", A_URI, [])

        assert aggregator.counts == SeverityCounts(errors=1)


class TestRendering:
    def test_summary(self):
        aggregator = DiagnosticsAggregator()
        aggregator.set_diagnostics(A_URI, [make_diagnostic(1), make_diagnostic(2)])
        console = Console(record=True, width=120)

        render_summary(aggregator, console)

        text = console.export_text()
        assert A_PATH in text
        assert "1 errors, 1 warnings, 0 info, 0 hints" in text

    def test_file_lines_are_one_indexed(self):
        aggregator = DiagnosticsAggregator()
        raw = make_diagnostic(1, "bad [thing]", line=4)
        raw["code"] = "E1"
        aggregator.set_diagnostics(A_URI, [raw])
        console = Console(record=True, width=120)

        render_file(aggregator, A_PATH, console)

        assert f"{A_PATH}:5:1 error [E1] bad [thing]" in console.export_text()
