from __future__ import annotations

HEADING_MARKER = "="
BULLET_MARKER = "-"
NUMBERED_MARKER = "+"

# Code fences without a language keep the dialect's own tag.
DEFAULT_CODE_LANGUAGE = "typst"

FLEX_COLUMN = "(flex: 1,)"
INDENT = "  "

CONTENTS_TABLE_FUNCTION = "contents_table"
CONTENTS_TABLE_HEADING = "Table of Contents"
FIGURE_TABLE_FUNCTION = "figure_table"
FIGURE_TABLE_HEADING = "Table of Figures"

DEFAULT_STEM = "report"
MARKUP_SUFFIX = ".typ"
PDF_SUFFIX = ".pdf"

HORIZONTAL_RULE = "#line(length: 100%)"


def heading_marker(depth: int) -> str:
    """Heading prefix for a node rendered at ``depth`` (0 is the report title)."""
    return HEADING_MARKER * (depth + 1)
