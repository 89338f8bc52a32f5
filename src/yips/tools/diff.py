"""Compact single-hunk diff previews for staged file changes."""

from __future__ import annotations

MAX_DIFF_BODY_LINES = 80


def build_diff_preview(before: str, after: str, *, max_body_lines: int = MAX_DIFF_BODY_LINES) -> str:
    """Render the changed region between ``before`` and ``after`` as one hunk.

    The common prefix and suffix lines are trimmed; everything in between is
    shown as removed then added lines. Long bodies are truncated with a marker.
    """
    if before == after:
        return "No content changes."

    old_lines = before.split("\n")
    new_lines = after.split("\n")

    prefix = 0
    while prefix < len(old_lines) and prefix < len(new_lines) and old_lines[prefix] == new_lines[prefix]:
        prefix += 1

    old_end = len(old_lines) - 1
    new_end = len(new_lines) - 1
    while old_end >= prefix and new_end >= prefix and old_lines[old_end] == new_lines[new_end]:
        old_end -= 1
        new_end -= 1

    removed = old_lines[prefix : old_end + 1]
    added = new_lines[prefix : new_end + 1]
    body = [f"-{line}" for line in removed] + [f"+{line}" for line in added]

    shown = body[:max_body_lines]
    if len(body) > max_body_lines:
        shown.append(f"... truncated {len(body) - max_body_lines} additional diff lines ...")

    header = [
        "--- before",
        "+++ after",
        f"@@ -{prefix + 1},{len(removed)} +{prefix + 1},{len(added)} @@",
    ]
    return "\n".join(header + shown)
