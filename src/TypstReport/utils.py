from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .exceptions import PersistenceError


def configure_logging(verbose: bool = False) -> None:
    """Configure a simple console logger."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(message)s",
    )


def resolve_output_dir(output_dir: Optional[str | Path]) -> Path:
    if output_dir is None:
        return Path.cwd()
    return Path(output_dir).expanduser()


def write_text(path: Path, content: str) -> None:
    """Write ``content`` atomically, replacing any existing file."""
    write_bytes(path, content.encode("utf-8"))


def write_bytes(path: Path, payload: bytes) -> None:
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path.write_bytes(payload)
        tmp_path.replace(path)
    except OSError as exc:
        if tmp_path.exists():
            tmp_path.unlink()
        raise PersistenceError(path, exc) from exc
