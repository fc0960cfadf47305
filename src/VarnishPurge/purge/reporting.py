"""Human-readable summaries of purge outcomes.

Success summaries are truncated to the first few paths; failure reports list
every error.
"""

from __future__ import annotations

from typing import List, Sequence

__all__ = [
    "ELLIPSIS_MARKER",
    "FAILURE_HEADER",
    "SUCCESS_HEADER",
    "SUMMARY_LIMIT",
    "render_failure",
    "render_success",
    "summarize_paths",
]

SUMMARY_LIMIT = 5
ELLIPSIS_MARKER = "..."
SUCCESS_HEADER = "Purges have been submitted successfully:"
FAILURE_HEADER = "Some Varnish purges failed:"


def summarize_paths(paths: Sequence[str], limit: int = SUMMARY_LIMIT) -> List[str]:
    """Return ``paths`` unchanged, or the first ``limit`` plus two markers.

    >>> summarize_paths(["/a", "/b"], limit=1)
    ['/a', '...', '(Total number of purged urls: 2)']
    """
    count = len(paths)
    if count <= limit:
        return list(paths)
    return [*paths[:limit], ELLIPSIS_MARKER, f"(Total number of purged urls: {count})"]


def render_success(paths: Sequence[str], separator: str = "\n") -> str:
    return separator.join([SUCCESS_HEADER, *summarize_paths(paths)])


def render_failure(errors: Sequence[str], separator: str = "\n") -> str:
    return separator.join([FAILURE_HEADER, *errors])
