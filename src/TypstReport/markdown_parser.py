from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence

from markdown_it import MarkdownIt
from mdit_py_plugins.texmath import texmath_plugin

from .escape import escape_markup, quote
from .model import (
    Block,
    BulletList,
    CodeBlock,
    Figure,
    FigureKind,
    Image,
    NumberedList,
    Paragraph,
    RawBlock,
    Section,
    TableBlock,
    Text,
)
from .report import Report
from .typst_format import HORIZONTAL_RULE

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Untitled Report"
INDENTED_CODE_LANGUAGE = "text"
# text starting with one of these would continue a preceding embedded call
EMBED_CONTINUATIONS = ("(", "[", ".")


@dataclass
class _Heading:
    level: int
    title: str
    plain: str


def parse_markdown(text: str, title: str | None = None, author: str | None = None) -> Report:
    """Build a report from Markdown.

    Headings open nested sections; a leading level-1 heading becomes the
    report title unless ``title`` is given. Content before the first section
    heading is front matter.
    """
    md = MarkdownIt("commonmark").use(texmath_plugin).enable(["table"])
    tokens = md.parse(text)
    items, _ = _parse_blocks(tokens, 0, stop_types=set())

    title_markup = None
    if title is None and items and isinstance(items[0], _Heading) and items[0].level == 1:
        heading = items.pop(0)
        title, title_markup = heading.plain, heading.title
    report = Report(title=title or DEFAULT_TITLE, author=author, title_markup=title_markup)
    _build_tree(report, items)
    logger.debug(
        "Parsed markdown into %d front matter blocks and %d sections", len(report.front_matter), len(report.sections)
    )
    return report


def _build_tree(report: Report, items: Sequence[Block | _Heading]) -> None:
    stack: list[tuple[int, Section]] = []
    for item in items:
        if isinstance(item, _Heading):
            section = Section(item.title)
            while stack and stack[-1][0] >= item.level:
                stack.pop()
            if stack:
                stack[-1][1].add_subsection(section)
            else:
                report.add_section(section)
            stack.append((item.level, section))
        elif stack:
            stack[-1][1].add_block(item)
        else:
            report.add_front_matter(item)


def _parse_blocks(tokens, index: int, stop_types: set[str]) -> tuple[list, int]:
    blocks: List = []
    i = index
    while i < len(tokens):
        tok = tokens[i]
        if tok.type in stop_types:
            break
        if tok.type == "heading_open":
            level = int(tok.tag[1])
            inline = tokens[i + 1]
            children = inline.children or []
            blocks.append(
                _Heading(level=level, title=_inline_markup(children).strip(), plain=_inline_plain(children).strip())
            )
            i += 3
        elif tok.type == "paragraph_open":
            inline = tokens[i + 1]
            children = list(inline.children or [])
            if len(children) == 1 and children[0].type == "image":
                blocks.append(_image_block(children[0]))
            else:
                blocks.append(Paragraph(Text(_inline_markup(children))))
            i += 3
        elif tok.type in ("bullet_list_open", "ordered_list_open"):
            ordered = tok.type == "ordered_list_open"
            close_type = "ordered_list_close" if ordered else "bullet_list_close"
            i += 1
            items: list[str] = []
            while i < len(tokens) and tokens[i].type != close_type:
                if tokens[i].type == "list_item_open":
                    i += 1
                    item_blocks, i = _parse_blocks(tokens, i, stop_types={"list_item_close"})
                    items.extend(_list_item_texts(item_blocks))
                    i += 1  # skip list_item_close
                else:
                    i += 1
            blocks.append(NumberedList(items) if ordered else BulletList(items))
            i += 1  # skip list close
        elif tok.type == "fence":
            language = tok.info.split()[0] if tok.info.strip() else None
            blocks.append(CodeBlock(content=tok.content, language=language))
            i += 1
        elif tok.type == "code_block":
            blocks.append(CodeBlock(content=tok.content, language=INDENTED_CODE_LANGUAGE))
            i += 1
        elif tok.type in ("math_block", "math_block_eqno"):
            blocks.append(RawBlock(f"$ {tok.content.strip()} $"))
            i += 1
        elif tok.type == "hr":
            blocks.append(RawBlock(HORIZONTAL_RULE))
            i += 1
        elif tok.type == "blockquote_open":
            inner, i = _parse_blocks(tokens, i + 1, stop_types={"blockquote_close"})
            blocks.append(_quote_block(inner))
            i += 1
        elif tok.type == "table_open":
            table_block, i = _parse_table(tokens, i)
            blocks.append(table_block)
        else:
            if tok.type == "html_block":
                logger.debug("Skipping raw HTML block at line %s", (tok.map or [None])[0])
            i += 1
    return blocks, i


def _list_item_texts(item_blocks: Iterable) -> list[str]:
    # Nested lists are flattened into the parent list after their item.
    texts: list[str] = []
    for block in item_blocks:
        if isinstance(block, Paragraph):
            if texts:
                texts[-1] = f"{texts[-1]} {block.text.content}"
            else:
                texts.append(block.text.content)
        elif isinstance(block, (BulletList, NumberedList)):
            texts.extend(block.items)
    return texts


def _quote_block(inner: Sequence) -> RawBlock:
    parts = [block.text.content for block in inner if isinstance(block, Paragraph)]
    return RawBlock(f"#quote(block: true)[{' '.join(parts)}]")


def _image_block(tok) -> Block:
    image = Image(tok.attrGet("src") or "")
    alt = tok.content or tok.attrGet("alt")
    if alt:
        image.alt(alt)
    title = tok.attrGet("title")
    if title:
        return Figure(body=image, caption=title, kind=FigureKind.IMAGE)
    return image


def _parse_table(tokens, index: int) -> tuple[TableBlock, int]:
    header: list[str] = []
    rows: list[list[str]] = []
    i = index + 1
    while i < len(tokens):
        tok = tokens[i]
        if tok.type == "thead_open":
            i += 1
            while tokens[i].type != "thead_close":
                if tokens[i].type == "th_open":
                    inline = tokens[i + 1]
                    header.append(_inline_markup(inline.children or []))
                    i += 3  # skip th_open, inline, th_close
                else:
                    i += 1
            i += 1
        elif tok.type == "tbody_open":
            i += 1
            while tokens[i].type != "tbody_close":
                if tokens[i].type == "tr_open":
                    row: list[str] = []
                    i += 1
                    while tokens[i].type != "tr_close":
                        if tokens[i].type in {"td_open", "th_open"}:
                            inline = tokens[i + 1]
                            row.append(_inline_markup(inline.children or []))
                            i += 3
                        else:
                            i += 1
                    rows.append(row)
                    i += 1  # skip tr_close
                else:
                    i += 1
            i += 1
        elif tok.type == "table_close":
            break
        else:
            i += 1
    return TableBlock(headers=header, rows=rows), i + 1


def _inline_markup(children: Iterable) -> str:
    parts: list[str] = []
    # indexes of parts that end an embedded expression
    embed_ends: set[int] = set()
    children_list = list(children)
    i = 0
    while i < len(children_list):
        tok = children_list[i]
        if tok.type == "text":
            parts.append(escape_markup(tok.content))
        elif tok.type == "softbreak":
            parts.append(" ")
        elif tok.type == "hardbreak":
            parts.append(" \\\n")
        elif tok.type == "strong_open":
            parts.append("#strong[")
        elif tok.type == "em_open":
            parts.append("#emph[")
        elif tok.type in {"strong_close", "em_close"}:
            parts.append("]")
            embed_ends.add(len(parts) - 1)
        elif tok.type == "code_inline":
            parts.append(_inline_raw(tok.content))
            if parts[-1].startswith("#"):
                embed_ends.add(len(parts) - 1)
        elif tok.type in {"math_inline", "math_single", "math_inline_double"}:
            parts.append(f"${tok.content}$")
        elif tok.type == "link_open":
            href = tok.attrGet("href") or ""
            label, i = _collect_link_label(children_list, i + 1)
            parts.append(f"#link({quote(href)})[{label or escape_markup(href)}]")
            embed_ends.add(len(parts) - 1)
        elif tok.type == "image":
            parts.append(f"#image({quote(tok.attrGet('src') or '')})")
            embed_ends.add(len(parts) - 1)
        i += 1
    return _join_parts(parts, embed_ends)


def _join_parts(parts: Sequence[str], embed_ends: set[int]) -> str:
    out: list[str] = []
    for idx, part in enumerate(parts):
        out.append(part)
        if idx in embed_ends:
            following = next((p for p in parts[idx + 1 :] if p), "")
            if following.startswith(EMBED_CONTINUATIONS):
                out.append(";")
    return "".join(out)


def _inline_plain(children: Iterable) -> str:
    parts: list[str] = []
    for tok in children:
        if tok.type in {"text", "code_inline", "math_inline", "math_single", "math_inline_double"}:
            parts.append(tok.content)
        elif tok.type in {"softbreak", "hardbreak"}:
            parts.append(" ")
        elif tok.type == "image":
            parts.append(tok.content)
    return "".join(parts)


def _collect_link_label(tokens: Sequence, index: int) -> tuple[str, int]:
    i = index
    while i < len(tokens) and tokens[i].type != "link_close":
        i += 1
    return _inline_markup(tokens[index:i]), i


def _inline_raw(content: str) -> str:
    if "`" not in content:
        return f"`{content}`"
    return f"#raw({quote(content)})"
