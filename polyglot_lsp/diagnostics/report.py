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

"""Rich rendering of diagnostics."""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from polyglot_lsp.diagnostics.aggregator import DiagnosticsAggregator
from polyglot_lsp.diagnostics.models import SeverityCounts

SEVERITY_STYLES = {
    "error": "bold red",
    "warning": "yellow",
    "info": "blue",
    "hint": "dim",
}


def format_counts(counts: SeverityCounts) -> str:
    return (
        f"[bold red]{counts.errors} errors[/], "
        f"[yellow]{counts.warnings} warnings[/], "
        f"[blue]{counts.info} info[/], "
        f"[dim]{counts.hints} hints[/]"
    )


def render_summary(aggregator: DiagnosticsAggregator, console: Optional[Console] = None) -> None:
    """Print per-file counts followed by the aggregate."""
    console = console or Console()

    table = Table(title="Diagnostics")
    table.add_column("File", style="cyan")
    table.add_column("Errors", justify="right", style=SEVERITY_STYLES["error"])
    table.add_column("Warnings", justify="right", style=SEVERITY_STYLES["warning"])
    table.add_column("Info", justify="right", style=SEVERITY_STYLES["info"])
    table.add_column("Hints", justify="right", style=SEVERITY_STYLES["hint"])

    for file_path in sorted(aggregator.files):
        counts = SeverityCounts.of(aggregator.get_diagnostics(file_path))
        table.add_row(
            escape(file_path),
            str(counts.errors),
            str(counts.warnings),
            str(counts.info),
            str(counts.hints),
        )

    console.print(table)
    console.print(f"Total: {format_counts(aggregator.counts)}")


def render_file(
    aggregator: DiagnosticsAggregator, file_path: str, console: Optional[Console] = None
) -> None:
    """Print the diagnostics of one file, one per line (1-indexed positions)."""
    console = console or Console()
    for d in aggregator.get_diagnostics(file_path):
        style = SEVERITY_STYLES.get(d.severity, "")
        code = " " + escape(f"[{d.code}]") if d.code else ""
        console.print(
            f"{escape(file_path)}:{d.range.start.line + 1}:{d.range.start.column + 1} "
            f"[{style}]{d.severity}[/]{code} {escape(d.message)}"
        )
