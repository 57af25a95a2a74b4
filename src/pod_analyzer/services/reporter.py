"""Report rendering.

Summary: one table of totals, target totals, ratios and per-image rows,
printed as a rich table on stdout or written as CSV to a file.
Detail: the namespace/pod/image resource tree as a JSON document.
"""

from __future__ import annotations

import csv
import json
import math
import sys
from pathlib import Path
from typing import Any, TextIO

from rich.console import Console
from rich.table import Table

from shared.models import ClusterReport, ContainerResourceUsage, DispatchRun, HostStatus, ratio
from shared.observability import get_logger

logger = get_logger(__name__)

SUMMARY_COLUMNS = ["#", "Name", "Memory Limits", "CPU Limits", "Memory Requests", "CPU Requests"]
DEFAULT_DETAIL_FILE = "report.json"
NO_DATA = "n/a"


class OutputDestinationError(Exception):
    """Raised when a report destination cannot be opened or written."""

    pass


def format_ratio(value: float) -> str:
    """Format a ratio; NaN (zero denominator) renders as ``n/a``."""
    if math.isnan(value):
        return NO_DATA
    return f"{value:.4f}"


def _usage_row(index: int, name: str, usage: ContainerResourceUsage) -> list[str]:
    return [
        str(index),
        name,
        str(usage.limits.memory),
        str(usage.limits.cpu),
        str(usage.requests.memory),
        str(usage.requests.cpu),
    ]


def render_summary(report: ClusterReport) -> list[list[str]]:
    """Build summary rows (without the header row).

    Rows 1-3 are the grand totals, target totals and target/total ratios;
    per-image rows follow, sorted by image name.
    """
    target, total = report.target_totals, report.grand_totals
    rows = [
        _usage_row(1, "Total", total),
        _usage_row(2, "Target", target),
        [
            "3",
            "Ratio",
            format_ratio(ratio(target.limits.memory, total.limits.memory)),
            format_ratio(ratio(target.limits.cpu, total.limits.cpu)),
            format_ratio(ratio(target.requests.memory, total.requests.memory)),
            format_ratio(ratio(target.requests.cpu, total.requests.cpu)),
        ],
    ]
    for index, image in enumerate(sorted(report.total_by_image), start=4):
        rows.append(_usage_row(index, image, report.total_by_image[image]))
    return rows


def render_detail(report: ClusterReport) -> dict[str, Any]:
    """Return the detail tree: namespace -> pod -> image -> {limits, requests}."""
    return report.detail


def _summary_table(report: ClusterReport) -> Table:
    table = Table(
        title="Container Resources",
        caption=(
            f"pattern={report.pattern!r}  "
            f"target containers={report.target_count}/{report.total_count}"
        ),
    )
    for column in SUMMARY_COLUMNS:
        table.add_column(
            column, justify="left" if column == "Name" else "right", overflow="fold"
        )
    for row in render_summary(report):
        table.add_row(*row)
    return table


def _write_csv(report: ClusterReport, out: TextIO) -> None:
    writer = csv.writer(out)
    writer.writerow(SUMMARY_COLUMNS)
    writer.writerows(render_summary(report))


def write_summary(
    report: ClusterReport,
    destination: str | Path | None = None,
    console: Console | None = None,
) -> None:
    """Write the summary.

    Without a destination the summary goes to stdout: a table on a terminal,
    CSV otherwise (a remote collector's stdout is a pipe read by the
    dispatcher). With a destination, the file is created or overwritten
    with CSV.

    Raises:
        OutputDestinationError: If the destination cannot be written.
    """
    if destination is None:
        console = console or Console(file=sys.stdout)
        if console.is_terminal:
            console.print(_summary_table(report))
        else:
            _write_csv(report, console.file)
        return

    path = Path(destination)
    try:
        with path.open("w", newline="", encoding="utf-8") as f:
            _write_csv(report, f)
    except OSError as e:
        raise OutputDestinationError(f"Cannot write summary to {path}: {e}") from e
    logger.info("Summary written", path=str(path))


def write_detail(report: ClusterReport, path: str | Path = DEFAULT_DETAIL_FILE) -> None:
    """Write the detail tree as JSON, creating or overwriting ``path``.

    Raises:
        OutputDestinationError: If the file cannot be written.
    """
    path = Path(path)
    try:
        with path.open("w", encoding="utf-8") as f:
            json.dump(render_detail(report), f, indent=2, sort_keys=True)
            f.write("\n")
    except OSError as e:
        raise OutputDestinationError(f"Cannot write detail report to {path}: {e}") from e
    logger.info("Detail report written", path=str(path))


_STATUS_STYLES = {
    HostStatus.SUCCEEDED: "green",
    HostStatus.TIMEOUT: "yellow",
}


def render_dispatch_summary(run: DispatchRun, console: Console | None = None) -> None:
    """Print per-host dispatch outcomes to stderr."""
    console = console or Console(file=sys.stderr)
    table = Table(
        title="Dispatch Results",
        caption=f"{len(run.succeeded)}/{len(run.results)} hosts succeeded",
    )
    table.add_column("Host", style="cyan", no_wrap=True)
    table.add_column("Status", justify="center")
    table.add_column("Exit", justify="right")
    table.add_column("Output", justify="right")
    table.add_column("Error", style="red")

    for result in run.results:
        style = _STATUS_STYLES.get(result.status, "red")
        output = f"{len(result.raw_output)}B"
        if result.partial:
            output += " (partial)"
        table.add_row(
            result.host,
            f"[{style}]{result.status.value}[/{style}]",
            "-" if result.exit_status is None else str(result.exit_status),
            output,
            result.error or "",
        )
    console.print(table)
