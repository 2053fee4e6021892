from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from .compiler import DocumentCompiler, TypstCompiler
from .escape import report_stem
from .exceptions import GeneratorDefectError
from .model import Block, Outline, PageSection, Section
from .renderer_typst import render_document
from .typst_format import MARKUP_SUFFIX, PDF_SUFFIX
from .utils import resolve_output_dir, write_bytes, write_text
from .validator import SyntaxChecker, SyntaxDiagnostic, TypstSyntaxChecker

logger = logging.getLogger(__name__)

PageContent = Union[PageSection, Block, Sequence[Block], str]


@dataclass(frozen=True)
class Validation:
    """Outcome of :meth:`Report.render_validated`.

    ``markup`` is only set when no diagnostics were found.
    """

    markup: Optional[str]
    diagnostics: Tuple[SyntaxDiagnostic, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    @property
    def messages(self) -> list[str]:
        return [diag.message for diag in self.diagnostics]


@dataclass
class Report:
    """Root of a document: metadata, front matter and top-level sections."""

    title: str
    author: Optional[str] = None
    # markup for the title heading when the plain title would not parse as markup
    title_markup: Optional[str] = None
    page_header: Optional[PageSection] = None
    page_footer: Optional[PageSection] = None
    include_outline: bool = True
    include_contents_table: bool = False
    include_figure_table: bool = False
    generate_pdf: bool = False
    front_matter: List[Block] = field(default_factory=list)
    sections: List[Section] = field(default_factory=list)
    contents_outline: Outline = field(default_factory=lambda: Outline(title="none"))
    figure_outline: Outline = field(default_factory=lambda: Outline(title="none", target="figure"))

    def with_author(self, author: str) -> Report:
        self.author = author
        return self

    def with_title_markup(self, markup: str) -> Report:
        self.title_markup = markup
        return self

    def header(self, content: PageContent) -> Report:
        self.page_header = PageSection.from_value(content)
        return self

    def footer(self, content: PageContent) -> Report:
        self.page_footer = PageSection.from_value(content)
        return self

    def with_outline(self, enabled: bool = True) -> Report:
        self.include_outline = enabled
        return self

    def with_contents_table(self, enabled: bool = True, outline: Optional[Outline] = None) -> Report:
        self.include_contents_table = enabled
        if outline is not None:
            self.contents_outline = outline
        return self

    def with_figure_table(self, enabled: bool = True, outline: Optional[Outline] = None) -> Report:
        self.include_figure_table = enabled
        if outline is not None:
            self.figure_outline = outline
        return self

    def with_pdf(self, enabled: bool = True) -> Report:
        self.generate_pdf = enabled
        return self

    def add_front_matter(self, block: Block) -> Report:
        self.front_matter.append(block)
        return self

    def add_section(self, section: Section) -> Report:
        self.sections.append(section)
        return self

    def add_sections(self, sections: Iterable[Section]) -> Report:
        self.sections.extend(sections)
        return self

    @property
    def stem(self) -> str:
        return report_stem(self.title)

    def output_paths(self, output_dir: Optional[str | Path] = None) -> tuple[Path, Path]:
        directory = resolve_output_dir(output_dir)
        return directory / f"{self.stem}{MARKUP_SUFFIX}", directory / f"{self.stem}{PDF_SUFFIX}"

    def render_markup(self) -> str:
        """Assemble the markup without validating it."""
        markup = render_document(self)
        logger.debug("Rendered %d sections into %d chars of markup", len(self.sections), len(markup))
        return markup

    def render_validated(self, checker: Optional[SyntaxChecker] = None) -> Validation:
        markup = self.render_markup()
        diagnostics = (checker or TypstSyntaxChecker()).check(markup)
        if diagnostics:
            return Validation(markup=None, diagnostics=tuple(diagnostics))
        return Validation(markup=markup)

    def render(
        self,
        output_dir: Optional[str | Path] = None,
        compiler: Optional[DocumentCompiler] = None,
        checker: Optional[SyntaxChecker] = None,
    ) -> str:
        """Validate, write ``<stem>.typ`` and, when enabled, ``<stem>.pdf``.

        Raises :class:`GeneratorDefectError` when the markup does not parse;
        write and compile failures raise :class:`PersistenceError` and
        :class:`CompilationError`.
        """
        validation = self.render_validated(checker)
        markup = validation.markup
        if markup is None:
            for diag in validation.diagnostics:
                logger.error("Invalid markup for %r at %s", self.title, diag)
            raise GeneratorDefectError(validation.diagnostics)

        typ_path, pdf_path = self.output_paths(output_dir)
        write_text(typ_path, markup)
        logger.info("Saved markup to %s", typ_path)

        if self.generate_pdf:
            pdf_bytes = (compiler or TypstCompiler()).compile(markup, typ_path)
            write_bytes(pdf_path, pdf_bytes)
            logger.info("Saved PDF to %s", pdf_path)

        return markup
