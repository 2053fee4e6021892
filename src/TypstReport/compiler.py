from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol, Sequence

import typst

from .exceptions import CompilationError, PersistenceError
from .typst_format import MARKUP_SUFFIX, PDF_SUFFIX
from .utils import write_bytes

logger = logging.getLogger(__name__)


class DocumentCompiler(Protocol):
    def compile(self, source: str, base_path: Path) -> bytes:
        """Compile ``source`` to PDF bytes, resolving relative references against ``base_path``."""
        ...


class TypstCompiler:
    """Compile markup with the ``typst`` Python binding.

    The binding bundles its own fonts and supplies the current date, so the
    only inputs are the markup and the directory it is rooted in. Files outside
    ``root`` cannot be read; without an explicit ``root`` the working directory
    is used when the output lies inside it, otherwise the output directory.
    """

    def __init__(
        self,
        font_paths: Sequence[str | Path] = (),
        ignore_system_fonts: bool = False,
        root: Optional[str | Path] = None,
    ) -> None:
        self.font_paths = [str(path) for path in font_paths]
        self.ignore_system_fonts = ignore_system_fonts
        self.root = Path(root) if root is not None else None

    def compile(self, source: str, base_path: Path) -> bytes:
        base_path = Path(base_path)
        directory = base_path.parent if base_path.suffix else base_path
        root = self.root or _default_root(directory)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(suffix=MARKUP_SUFFIX, prefix=".compile-", dir=directory)
        except OSError as exc:
            raise PersistenceError(directory, exc) from exc
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(source)
            logger.debug("Compiling %s (root %s)", base_path, root)
            return typst.compile(
                str(tmp_path.resolve()),
                root=str(root),
                font_paths=self.font_paths,
                ignore_system_fonts=self.ignore_system_fonts,
            )
        except RuntimeError as exc:
            raise CompilationError(base_path, str(exc)) from exc
        finally:
            tmp_path.unlink(missing_ok=True)


def _default_root(directory: Path) -> Path:
    cwd = Path.cwd().resolve()
    resolved = directory.resolve()
    return cwd if resolved.is_relative_to(cwd) else resolved


def compile_file(
    input_path: str | Path,
    output: Optional[str | Path] = None,
    compiler: Optional[DocumentCompiler] = None,
) -> Path:
    """Compile an existing markup file to PDF next to it (or at ``output``)."""
    input_path = Path(input_path).expanduser()
    if not input_path.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")
    output_path = Path(output) if output else input_path.with_suffix(PDF_SUFFIX)
    if output_path.is_dir():
        output_path = output_path / f"{input_path.stem}{PDF_SUFFIX}"

    source = input_path.read_text(encoding="utf-8")
    pdf_bytes = (compiler or TypstCompiler()).compile(source, input_path)
    write_bytes(output_path, pdf_bytes)
    logger.info("PDF written to %s", output_path)
    return output_path
