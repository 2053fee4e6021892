"""Escaping helpers for the positions generated markup can take."""

from __future__ import annotations

import re

from .typst_format import DEFAULT_STEM

_STEM_SEPARATORS = re.compile(r"[^a-z0-9]+")


def escape_str(value: str) -> str:
    """Escape content for a double-quoted string literal.

    Backslashes are escaped before quotes; the reverse order would double the
    backslash introduced for each quote.
    """
    return value.replace("\\", "\\\\").replace('"', '\\"')


def quote(value: str) -> str:
    return f'"{escape_str(value)}"'


def escape_caption(caption: str) -> str:
    """Escape content placed inside a ``[...]`` caption block."""
    return caption.replace("\\", "\\\\").replace("[", "\\[").replace("]", "\\]")


def escape_markup(text: str) -> str:
    """Escape plain text so that markup syntax characters render literally.

    Only characters that can start markup constructs at the current position
    are escaped; ``-``, ``+``, ``=`` and ``/`` matter only at the start of a
    line or when doubled, so they are escaped there alone.
    """
    out: list[str] = []
    for idx, ch in enumerate(text):
        if ch in "\\#$*_`<>@[]~":
            out.append("\\" + ch)
        elif ch in "-+=" and (idx == 0 or text[idx - 1] == "\n"):
            out.append("\\" + ch)
        elif ch == "/" and idx + 1 < len(text) and text[idx + 1] in "/*":
            out.append("\\/")
        else:
            out.append(ch)
    return "".join(out)


def report_stem(title: str) -> str:
    """Derive an output file stem from a report title.

    ASCII letters and digits are kept (lowercased); every other run of
    characters collapses to a single underscore.
    """
    lowered = "".join(ch.lower() if ch.isascii() else " " for ch in title)
    stem = _STEM_SEPARATORS.sub("_", lowered).strip("_")
    return stem or DEFAULT_STEM
