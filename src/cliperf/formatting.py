"""Text formatting helpers for cliperf's CLI output."""

from __future__ import annotations

from collections.abc import Sequence


def format_seconds(seconds: float) -> str:
    """Format a build time: ``'0.84s'``, ``'12.3s'``, ``'2m 05s'``."""
    if seconds >= 60:
        m, s = divmod(int(seconds), 60)
        return f"{m}m {s:02d}s"
    if seconds >= 10:
        return f"{seconds:.1f}s"
    return f"{seconds:.2f}s"


def format_status_icon(status: str) -> str:
    """Return a visual status indicator for a variant run status."""
    icons: dict[str, str] = {
        "ok": "✓ OK",
        "fail": "✗ FAIL",
        "timeout": "⏱ TIMEOUT",
        "error": "⚠ ERROR",
        "skipped": "⊘ DRY-RUN",
    }
    return icons.get(status, status.upper())


def truncate(text: str, max_len: int, suffix: str = "...") -> str:
    """Truncate text to *max_len*, adding *suffix* if truncated."""
    if len(text) <= max_len:
        return text
    if max_len <= len(suffix):
        return suffix[:max_len]
    return text[: max_len - len(suffix)] + suffix


def format_table(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    *,
    right_align: Sequence[int] = (),
    max_width: int = 60,
    indent: int = 2,
) -> str:
    """Format rows as an aligned text table.

    Cells wider than *max_width* are truncated.  Columns whose index is in
    *right_align* are right-aligned (numbers, durations).
    """
    if not headers:
        return ""

    ncols = len(headers)
    cells = [[truncate(h, max_width) for h in headers]]
    for row in rows:
        padded = list(row)[:ncols] + [""] * (ncols - len(row))
        cells.append([truncate(c, max_width) for c in padded])

    widths = [max(len(r[i]) for r in cells) for i in range(ncols)]
    prefix = " " * indent

    lines = []
    for row in cells:
        parts = [
            cell.rjust(widths[i]) if i in right_align else cell.ljust(widths[i])
            for i, cell in enumerate(row)
        ]
        lines.append(prefix + "  ".join(parts).rstrip())
    return "\n".join(lines)


def format_section_header(title: str, width: int = 80) -> str:
    """Format a section header: ``'─── Title ──...'``."""
    prefix = "─── "
    suffix_len = width - len(prefix) - len(title) - 1
    return prefix + title + " " + "─" * max(0, suffix_len)
