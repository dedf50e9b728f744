"""Text normalization and page marker helpers for extracted documents."""

from __future__ import annotations

import re

_PAGE_MARKER_PATTERN = re.compile(r"\[\[PAGE_\d+\]\]")
_MULTISPACE_PATTERN = re.compile(r"[ \t\u00a0]+")
_BULLET_PATTERN = re.compile(r"^([*\-•●◦▪▫‣⁃–—]+)\s*")


def page_marker(page_number: int) -> str:
    """Return the structural marker that precedes a page of extracted text."""
    return f"[[PAGE_{page_number}]]"


def strip_page_markers(text: str) -> str:
    """Remove structural page markers and trim surrounding whitespace."""
    return _PAGE_MARKER_PATTERN.sub("", text).strip()


def join_pages(pages: list[str] | tuple[str, ...]) -> str:
    """Join page texts, prefixing each with its page marker."""
    return "".join(
        f"\n{page_marker(index)}\n{page}\n" for index, page in enumerate(pages, start=1)
    )


def normalize_page_text(raw_text: str) -> str:
    """Normalize one page of extracted text without changing its meaning."""
    normalized_newlines = raw_text.replace("\r\n", "\n").replace("\r", "\n")

    result_lines: list[str] = []
    previous_empty = False
    for line in normalized_newlines.split("\n"):
        stripped = line.strip()
        if not stripped:
            if result_lines and not previous_empty:
                result_lines.append("")
            previous_empty = True
            continue

        previous_empty = False
        compact = _MULTISPACE_PATTERN.sub(" ", stripped)
        compact = _BULLET_PATTERN.sub("- ", compact, count=1)
        result_lines.append(compact)

    while result_lines and result_lines[-1] == "":
        result_lines.pop()

    return "\n".join(result_lines)
