from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, List

import yaml

from .exceptions import ReportDefinitionError
from .model import (
    TEXT_ATTRIBUTES,
    Block,
    CodeBlock,
    Figure,
    FigureKind,
    Image,
    ImageOptions,
    Paragraph,
    RawBlock,
    Section,
    TableBlock,
    Text,
    TextOptions,
    bullets,
    link_to_location,
    link_to_url,
    numbered,
)
from .report import Report

logger = logging.getLogger(__name__)

IMAGE_OPTION_KEYS = ("alt", "width", "height", "fit", "format", "dpi", "gamma", "frame", "invert")
FIGURE_KINDS = {kind.value: kind for kind in FigureKind}


def load_yaml_report(path: str | Path) -> Report:
    return parse_yaml_report(Path(path).read_text(encoding="utf-8"))


def parse_yaml_report(text: str) -> Report:
    """Parse a declarative report definition into a :class:`Report`."""
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ReportDefinitionError("YAML root must be a mapping with defined fields.")
    title = data.get("title")
    if not title:
        raise ReportDefinitionError("Report definition requires a 'title'.")

    report = Report(title=str(title))
    if data.get("author"):
        report.with_author(str(data["author"]))
    if data.get("header") is not None:
        report.header(_page_content(data["header"]))
    if data.get("footer") is not None:
        report.footer(_page_content(data["footer"]))
    report.with_outline(bool(data.get("outline", True)))
    report.with_contents_table(bool(data.get("contents_table", False)))
    report.with_figure_table(bool(data.get("figure_table", False)))
    report.with_pdf(bool(data.get("generate_pdf", False)))

    for entry in _normalize_list(data.get("front_matter"), "front_matter"):
        report.add_front_matter(_build_block(entry))
    for entry in _normalize_list(data.get("sections"), "sections"):
        report.add_section(_build_section(entry))

    logger.debug("Parsed YAML definition %r with %d sections", report.title, len(report.sections))
    return report


def _page_content(value) -> str | List[Block]:
    if isinstance(value, str):
        return value
    return [_build_block(entry) for entry in _normalize_list(value, "header/footer")]


def _build_section(value) -> Section:
    if not isinstance(value, dict) or not value.get("title"):
        raise ReportDefinitionError(f"Section entries need a 'title': {value!r}")
    section = Section(str(value["title"]))
    section.add_blocks(_build_block(entry) for entry in _normalize_list(value.get("blocks"), "blocks"))
    for child in _normalize_list(value.get("sections"), "sections"):
        section.add_subsection(_build_section(child))
    return section


def _build_block(entry) -> Block:
    """Parse one block descriptor: a bare string or a single-key mapping."""
    if isinstance(entry, str):
        return Paragraph(Text(entry))
    if not isinstance(entry, dict) or len(entry) != 1:
        raise ReportDefinitionError(f"Block descriptors must be a string or a single-key mapping: {entry!r}")
    kind, value = next(iter(entry.items()))

    if kind == "paragraph":
        return Paragraph(_build_text(value))
    if kind in {"bullet_list", "unordered_list"}:
        return bullets(_normalize_list(value, kind))
    if kind in {"numbered_list", "ordered_list"}:
        return numbered(_normalize_list(value, kind))
    if kind in {"code", "code_block"}:
        if isinstance(value, dict):
            return CodeBlock(content=str(value.get("content", "")), language=value.get("language"))
        return CodeBlock(content=str(value))
    if kind == "table":
        return _build_table(value)
    if kind == "image":
        return _build_image(value)
    if kind == "figure":
        return _build_figure(value)
    if kind == "link":
        return _build_link(value)
    if kind == "raw":
        return RawBlock(str(value))
    raise ReportDefinitionError(f"Unknown block type: {kind!r}")


def _build_text(value) -> Text:
    if not isinstance(value, dict):
        return Text(str(value))
    attrs = {key: str(val) for key, val in value.items() if key in TEXT_ATTRIBUTES}
    unknown = set(value) - set(attrs) - {"text"}
    if unknown:
        raise ReportDefinitionError(f"Unknown text attributes: {', '.join(sorted(unknown))}")
    return Text(str(value.get("text", "")), TextOptions(**attrs))


def _build_table(value) -> TableBlock:
    if not isinstance(value, dict):
        raise ReportDefinitionError(f"Table must be a mapping with 'header' and 'rows': {value!r}")
    header = _strings(_normalize_list(value.get("header"), "header"))
    rows = [_strings(_normalize_list(row, "row")) for row in value.get("rows") or []]
    return TableBlock(headers=header, rows=rows)


def _build_image(value) -> Image:
    if isinstance(value, str):
        return Image(value)
    if not isinstance(value, dict):
        raise ReportDefinitionError(f"Image must be a path or a mapping: {value!r}")
    src = value.get("path") or value.get("src")
    if not src:
        raise ReportDefinitionError("Image requires a 'path'.")
    options = {}
    for key in IMAGE_OPTION_KEYS:
        if value.get(key) is None:
            continue
        options[key] = bool(value[key]) if key == "invert" else str(value[key])
    return Image(str(src), ImageOptions(**options))


def _build_figure(value) -> Figure:
    if not isinstance(value, dict):
        raise ReportDefinitionError(f"Figure must be a mapping: {value!r}")
    if "image" in value:
        body = _build_image(value["image"])
    elif "table" in value:
        body = _build_table(value["table"])
    else:
        raise ReportDefinitionError("Figure requires an 'image' or a 'table'.")
    figure = Figure(body=body)
    if value.get("caption") is not None:
        figure.with_caption(str(value["caption"]))
    kind = value.get("kind")
    if kind is not None:
        figure.with_kind(FIGURE_KINDS.get(str(kind), str(kind)))
    return figure


def _build_link(value) -> Block:
    if not isinstance(value, dict):
        raise ReportDefinitionError(f"Link must be a mapping: {value!r}")
    content = _build_text(value.get("text", ""))
    if value.get("url"):
        return link_to_url(str(value["url"]), content)
    if value.get("location"):
        return link_to_location(str(value["location"]), content)
    raise ReportDefinitionError("Link requires a 'url' or a 'location'.")


def _normalize_list(value: Any, name: str) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, dict):
        raise ReportDefinitionError(f"'{name}' must be a list.")
    return [str(value)]


def _strings(values: Iterable) -> list[str]:
    return [str(v) for v in values]
