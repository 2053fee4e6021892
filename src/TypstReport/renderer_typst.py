from __future__ import annotations

from io import StringIO
from typing import TYPE_CHECKING, Iterable, Sequence

from . import typst_format
from .escape import escape_caption, escape_str, quote
from .model import (
    AttributeValue,
    Block,
    BulletList,
    CodeBlock,
    Figure,
    Image,
    Link,
    Location,
    NumberedList,
    Outline,
    PageSection,
    Paragraph,
    Quoted,
    Raw,
    RawBlock,
    Section,
    TableBlock,
    Text,
    Url,
)

if TYPE_CHECKING:
    from .report import Report


def format_value(value: AttributeValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Quoted):
        return quote(value.value)
    if isinstance(value, Raw):
        return value.value
    raise TypeError(f"Unsupported option value: {value!r}")


def render_text(value: Text) -> str:
    """Plain markup when unstyled, otherwise a ``#text(...)`` call."""
    items = value.options.items()
    if not items:
        return value.content.strip()
    args = [quote(value.content)]
    args.extend(f"{name}: {format_value(option)}" for name, option in items)
    return f"#text({', '.join(args)})"


def render_blocks(out: StringIO, blocks: Iterable[Block]) -> None:
    for block in blocks:
        render_block(out, block)


def render_block(out: StringIO, block: Block) -> None:
    if isinstance(block, Paragraph):
        out.write(render_text(block.text) + "\n")
    elif isinstance(block, BulletList):
        _render_list(out, block.items, typst_format.BULLET_MARKER)
    elif isinstance(block, NumberedList):
        _render_list(out, block.items, typst_format.NUMBERED_MARKER)
    elif isinstance(block, CodeBlock):
        _render_code_block(out, block)
    elif isinstance(block, TableBlock):
        out.write("#" + render_table(block.headers, block.rows) + "\n")
    elif isinstance(block, Image):
        out.write("#" + render_image(block) + "\n")
    elif isinstance(block, Figure):
        out.write(_render_figure(block) + "\n")
    elif isinstance(block, Link):
        out.write(_render_link(block) + "\n")
    elif isinstance(block, RawBlock):
        out.write(block.content + "\n")
    else:
        raise TypeError(f"Unsupported block type: {type(block).__name__}")
    # blank line between siblings
    out.write("\n")


def _render_list(out: StringIO, items: Sequence[str], marker: str) -> None:
    for item in items:
        out.write(f"{marker} {item.strip()}\n")


def _render_code_block(out: StringIO, block: CodeBlock) -> None:
    language = block.language or typst_format.DEFAULT_CODE_LANGUAGE
    out.write(f"```{language}\n")
    out.write(block.content.rstrip() + "\n")
    out.write("```\n")


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    """Bare ``table(...)`` call; callers add the leading ``#`` in markup position."""
    column_spec = ", ".join(typst_format.FLEX_COLUMN for _ in headers)
    lines = [f"table(columns: ({column_spec}))["]
    lines.append(typst_format.INDENT + _cell_group(headers))
    for row in rows:
        lines.append(typst_format.INDENT + _cell_group(row))
    lines.append("]")
    return "\n".join(lines)


def _cell_group(cells: Sequence[str]) -> str:
    return " ".join(f"[{cell.strip()}]" for cell in cells)


def render_image(block: Image) -> str:
    args = [quote(block.path.strip())]
    args.extend(f"{name}: {format_value(value)}" for name, value in block.options.items())
    return f"image({', '.join(args)})"


def _render_figure(block: Figure) -> str:
    if isinstance(block.body, Image):
        body = render_image(block.body)
    else:
        body = render_table(block.body.headers, block.body.rows)
    args = [body]
    if block.caption is not None:
        args.append(f"caption: [{escape_caption(block.caption)}]")
    if block.kind is not None:
        args.append(f"kind: {block.kind.value}")
    return f"#figure({', '.join(args)})"


def _render_link(block: Link) -> str:
    if isinstance(block.destination, Url):
        destination = f'target: "{escape_str(block.destination.value)}"'
    elif isinstance(block.destination, Location):
        destination = f"location: {block.destination.value}"
    else:
        raise TypeError(f"Unsupported link destination: {block.destination!r}")
    return f"#link({destination})[{render_text(block.content)}]"


def render_section(out: StringIO, section: Section, depth: int) -> None:
    out.write(f"{typst_format.heading_marker(depth)} {section.title}\n\n")
    render_blocks(out, section.blocks)
    for subsection in section.subsections:
        render_section(out, subsection, depth + 1)


def render_outline_function(name: str, outline: Outline) -> str:
    arguments = outline.arguments()
    if not arguments:
        return f"#let {name}() = outline()\n"
    lines = [f"#let {name}() = outline("]
    lines.extend(f"{typst_format.INDENT}{arg}: {value}," for arg, value in arguments)
    lines.append(")")
    return "\n".join(lines) + "\n"


def render_page_section(section: PageSection) -> str:
    out = StringIO()
    render_blocks(out, section.blocks)
    return f"[{out.getvalue().strip()}]"


def render_document(report: Report) -> str:
    out = StringIO()

    metadata = [f"title: {quote(report.title)}"]
    if report.author is not None:
        metadata.append(f"author: {quote(report.author)}")
    out.write(f"#set document({', '.join(metadata)})\n\n")

    if report.include_contents_table:
        out.write(render_outline_function(typst_format.CONTENTS_TABLE_FUNCTION, report.contents_outline) + "\n")
    if report.include_figure_table:
        out.write(render_outline_function(typst_format.FIGURE_TABLE_FUNCTION, report.figure_outline) + "\n")

    page = []
    if report.page_header is not None:
        page.append(f"header: {render_page_section(report.page_header)}")
    if report.page_footer is not None:
        page.append(f"footer: {render_page_section(report.page_footer)}")
    if page:
        out.write(f"#set page({', '.join(page)})\n\n")

    title = report.title if report.title_markup is None else report.title_markup
    out.write(f"{typst_format.heading_marker(0)} {title}\n\n")

    if report.include_outline:
        out.write("#outline()\n\n")
    if report.include_contents_table:
        out.write(f"{typst_format.heading_marker(0)} {typst_format.CONTENTS_TABLE_HEADING}\n\n")
        out.write(f"#{typst_format.CONTENTS_TABLE_FUNCTION}()\n\n")
    if report.include_figure_table:
        out.write(f"{typst_format.heading_marker(0)} {typst_format.FIGURE_TABLE_HEADING}\n\n")
        out.write(f"#{typst_format.FIGURE_TABLE_FUNCTION}()\n\n")

    render_blocks(out, report.front_matter)
    for section in report.sections:
        render_section(out, section, 1)

    return out.getvalue()
