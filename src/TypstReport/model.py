from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from functools import total_ordering
from enum import Enum
from typing import Iterable, List, Sequence, Union


@dataclass(frozen=True)
class Raw:
    """Option value emitted verbatim."""

    value: str


@dataclass(frozen=True)
class Quoted:
    """Option value emitted as an escaped string literal."""

    value: str


AttributeValue = Union[Raw, Quoted, bool]


def _option_items(options, quoted: frozenset[str]) -> list[tuple[str, AttributeValue]]:
    items: list[tuple[str, AttributeValue]] = []
    for attr in fields(options):
        value = getattr(options, attr.name)
        if value is None:
            continue
        if isinstance(value, bool):
            items.append((attr.name, value))
        elif attr.name in quoted:
            items.append((attr.name, Quoted(str(value))))
        else:
            items.append((attr.name, Raw(str(value))))
    return items


@dataclass(frozen=True)
class TextOptions:
    """Styling attributes for ``#text``.

    Field order is the order attributes are emitted in. ``lang`` and ``font``
    are string literals; every other value is a pre-formatted fragment.
    """

    fill: str | None = None
    lang: str | None = None
    size: str | None = None
    font: str | None = None
    style: str | None = None
    weight: str | None = None
    tracking: str | None = None
    stretch: str | None = None
    variant: str | None = None
    baseline: str | None = None
    underline: str | None = None
    overline: str | None = None
    line_through: str | None = None
    outline: str | None = None
    shadow: str | None = None
    offset: str | None = None
    rotate: str | None = None
    scale: str | None = None
    dir: str | None = None
    writing_mode: str | None = None
    region: str | None = None
    justification: str | None = None
    align: str | None = None
    first_line_indent: str | None = None
    hanging_indent: str | None = None
    leading: str | None = None
    spacing: str | None = None
    parbreak: str | None = None

    QUOTED = frozenset({"lang", "font"})

    def merge(self, **attrs: str) -> TextOptions:
        return replace(self, **attrs)

    def items(self) -> list[tuple[str, AttributeValue]]:
        return _option_items(self, self.QUOTED)

    def is_empty(self) -> bool:
        return not self.items()


TEXT_ATTRIBUTES = tuple(attr.name for attr in fields(TextOptions))


@total_ordering
@dataclass(frozen=True)
class Text:
    """Immutable text value; builder methods return an updated copy."""

    content: str
    options: TextOptions = field(default_factory=TextOptions)

    def sort_key(self) -> tuple:
        return (self.content, tuple((name, repr(value)) for name, value in self.options.items()))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Text):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def with_options(self, options: TextOptions | None = None, **attrs: str) -> Text:
        base = options if options is not None else self.options
        return replace(self, options=base.merge(**attrs) if attrs else base)

    def fill(self, value: str) -> Text:
        return self.with_options(fill=value)

    def lang(self, value: str) -> Text:
        return self.with_options(lang=value)

    def size(self, value: str) -> Text:
        return self.with_options(size=value)

    def font(self, value: str) -> Text:
        return self.with_options(font=value)

    def style(self, value: str) -> Text:
        return self.with_options(style=value)

    def weight(self, value: str) -> Text:
        return self.with_options(weight=value)

    def tracking(self, value: str) -> Text:
        return self.with_options(tracking=value)

    def stretch(self, value: str) -> Text:
        return self.with_options(stretch=value)

    def variant(self, value: str) -> Text:
        return self.with_options(variant=value)

    def baseline(self, value: str) -> Text:
        return self.with_options(baseline=value)

    def underline(self, value: str) -> Text:
        return self.with_options(underline=value)

    def overline(self, value: str) -> Text:
        return self.with_options(overline=value)

    def line_through(self, value: str) -> Text:
        return self.with_options(line_through=value)

    def outline(self, value: str) -> Text:
        return self.with_options(outline=value)

    def shadow(self, value: str) -> Text:
        return self.with_options(shadow=value)

    def offset(self, value: str) -> Text:
        return self.with_options(offset=value)

    def rotate(self, value: str) -> Text:
        return self.with_options(rotate=value)

    def scale(self, value: str) -> Text:
        return self.with_options(scale=value)

    def dir(self, value: str) -> Text:
        return self.with_options(dir=value)

    def writing_mode(self, value: str) -> Text:
        return self.with_options(writing_mode=value)

    def region(self, value: str) -> Text:
        return self.with_options(region=value)

    def justification(self, value: str) -> Text:
        return self.with_options(justification=value)

    def align(self, value: str) -> Text:
        return self.with_options(align=value)

    def first_line_indent(self, value: str) -> Text:
        return self.with_options(first_line_indent=value)

    def hanging_indent(self, value: str) -> Text:
        return self.with_options(hanging_indent=value)

    def leading(self, value: str) -> Text:
        return self.with_options(leading=value)

    def spacing(self, value: str) -> Text:
        return self.with_options(spacing=value)

    def parbreak(self, value: str) -> Text:
        return self.with_options(parbreak=value)


TextLike = Union[Text, str]


def as_text(value: TextLike) -> Text:
    return value if isinstance(value, Text) else Text(str(value))


@dataclass
class Block:
    """Base class for block-level nodes."""


@dataclass
class Paragraph(Block):
    text: Text


@dataclass
class BulletList(Block):
    items: List[str]


@dataclass
class NumberedList(Block):
    items: List[str]


@dataclass
class CodeBlock(Block):
    content: str
    language: str | None = None


@dataclass
class TableBlock(Block):
    # Row length is not checked against the header; rows render as given.
    headers: List[str]
    rows: List[List[str]] = field(default_factory=list)


@dataclass(frozen=True)
class ImageOptions:
    alt: str | None = None
    width: str | None = None
    height: str | None = None
    fit: str | None = None
    format: str | None = None
    dpi: str | None = None
    gamma: str | None = None
    frame: str | None = None
    invert: bool | None = None

    QUOTED = frozenset({"alt", "format"})

    def items(self) -> list[tuple[str, AttributeValue]]:
        return _option_items(self, self.QUOTED)

    def with_alt(self, value: str) -> ImageOptions:
        return replace(self, alt=value)

    def with_width(self, value: str) -> ImageOptions:
        return replace(self, width=value)

    def with_height(self, value: str) -> ImageOptions:
        return replace(self, height=value)

    def with_fit(self, value: str) -> ImageOptions:
        return replace(self, fit=value)

    def with_format(self, value: str) -> ImageOptions:
        return replace(self, format=value)

    def with_dpi(self, value: str) -> ImageOptions:
        return replace(self, dpi=value)

    def with_gamma(self, value: str) -> ImageOptions:
        return replace(self, gamma=value)

    def with_frame(self, value: str) -> ImageOptions:
        return replace(self, frame=value)

    def with_invert(self, value: bool) -> ImageOptions:
        return replace(self, invert=value)


@dataclass
class Image(Block):
    path: str
    options: ImageOptions = field(default_factory=ImageOptions)

    def with_options(self, options: ImageOptions) -> Image:
        self.options = options
        return self

    def alt(self, value: str) -> Image:
        return self.with_options(self.options.with_alt(value))

    def width(self, value: str) -> Image:
        return self.with_options(self.options.with_width(value))

    def height(self, value: str) -> Image:
        return self.with_options(self.options.with_height(value))

    def fit(self, value: str) -> Image:
        return self.with_options(self.options.with_fit(value))

    def format(self, value: str) -> Image:
        return self.with_options(self.options.with_format(value))

    def dpi(self, value: str) -> Image:
        return self.with_options(self.options.with_dpi(value))

    def gamma(self, value: str) -> Image:
        return self.with_options(self.options.with_gamma(value))

    def frame(self, value: str) -> Image:
        return self.with_options(self.options.with_frame(value))

    def invert(self, value: bool = True) -> Image:
        return self.with_options(self.options.with_invert(value))


class FigureKind(Enum):
    AUTO = "auto"
    IMAGE = "image"
    TABLE = "table"

    @staticmethod
    def custom(kind: str) -> CustomKind:
        return CustomKind(kind)


@dataclass(frozen=True)
class CustomKind:
    """A figure kind outside the built-in set, emitted verbatim."""

    value: str


@dataclass
class Figure(Block):
    body: Union[Image, TableBlock]
    caption: str | None = None
    kind: Union[FigureKind, CustomKind, None] = None

    def with_caption(self, caption: str) -> Figure:
        self.caption = caption
        return self

    def with_kind(self, kind: Union[FigureKind, CustomKind, str]) -> Figure:
        self.kind = CustomKind(kind) if isinstance(kind, str) else kind
        return self


@dataclass(frozen=True)
class Url:
    value: str


@dataclass(frozen=True)
class Location:
    value: str


LinkDestination = Union[Url, Location]


@dataclass
class Link(Block):
    destination: LinkDestination
    content: Text


@dataclass
class RawBlock(Block):
    content: str


@dataclass
class Section:
    """A titled container; heading depth comes from its position in the tree."""

    title: str
    blocks: List[Block] = field(default_factory=list)
    subsections: List["Section"] = field(default_factory=list)

    def add_block(self, block: Block) -> Section:
        self.blocks.append(block)
        return self

    def add_blocks(self, blocks: Iterable[Block]) -> Section:
        self.blocks.extend(blocks)
        return self

    def add_subsection(self, section: Section) -> Section:
        self.subsections.append(section)
        return self


@dataclass
class PageSection:
    """Blocks placed in the page header or footer."""

    blocks: List[Block] = field(default_factory=list)

    @classmethod
    def from_value(cls, value: Union[PageSection, Block, Sequence[Block], str]) -> PageSection:
        if isinstance(value, PageSection):
            return value
        if isinstance(value, str):
            return cls(blocks=[Paragraph(Text(value))])
        if isinstance(value, Block):
            return cls(blocks=[value])
        return cls(blocks=list(value))


@dataclass
class Outline:
    """Arguments of an ``outline(...)`` call, emitted in field order as raw fragments."""

    title: str | None = None
    target: str | None = None
    indent: str | None = None
    depth: int | None = None

    def arguments(self) -> list[tuple[str, str]]:
        values = (
            ("title", self.title),
            ("target", self.target),
            ("indent", self.indent),
            ("depth", None if self.depth is None else str(self.depth)),
        )
        return [(name, value) for name, value in values if value is not None]

    def render_function(self, name: str) -> str:
        from .renderer_typst import render_outline_function

        return render_outline_function(name, self)


def text(content: str) -> Text:
    return Text(content)


def text_with_options(content: str, options: TextOptions) -> Text:
    return Text(content, options)


def paragraph(value: TextLike) -> Paragraph:
    return Paragraph(as_text(value))


def bullets(items: Iterable[str]) -> BulletList:
    return BulletList([str(item) for item in items])


def numbered(items: Iterable[str]) -> NumberedList:
    return NumberedList([str(item) for item in items])


def code(language: str | None, content: str) -> CodeBlock:
    return CodeBlock(content=content, language=language)


def table(headers: Iterable[str], rows: Iterable[Iterable[str]]) -> TableBlock:
    return TableBlock(headers=[str(h) for h in headers], rows=[[str(c) for c in row] for row in rows])


def image(value: Union[Image, str]) -> Image:
    return value if isinstance(value, Image) else Image(str(value))


def figure(body: Union[Image, TableBlock, str]) -> Figure:
    return Figure(body=image(body) if isinstance(body, str) else body)


def link_to_url(url: str, content: TextLike) -> Link:
    return Link(Url(url), as_text(content))


def link_to_location(location: str, content: TextLike) -> Link:
    return Link(Location(location), as_text(content))


def raw(content: str) -> RawBlock:
    return RawBlock(content)
