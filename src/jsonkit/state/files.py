from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Union

from jsonkit.common.errors import InvalidFileError


PathLike = Union[str, "os.PathLike[str]"]


def is_file(path: PathLike) -> bool:
    # Arbitrary strings reach here (ciphertext, JSON scalars); bad names are just "not a file"
    try:
        return Path(path).is_file()
    except (OSError, ValueError):
        return False


def is_bindable(path: PathLike) -> bool:
    """A path that does not exist yet but could be written later."""
    if any(ch in str(path) for ch in "\r\n"):
        return False
    try:
        p = Path(path)
        if p.exists():
            return p.is_file()
        # Only names with an extension count as file targets
        return bool(p.suffix) and p.parent.is_dir() and os.access(p.parent, os.W_OK)
    except (OSError, ValueError):
        return False


def read_text(path: PathLike) -> str:
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as ex:
        raise InvalidFileError(f"Unable to import from file: {p}") from ex


def write_text_atomic(path: PathLike, text: str) -> None:
    """
    Replace `path` with `text` in one step.

    Writes to a temp file in the target directory, flushes it to disk and
    `os.replace`s it over the target, so readers never see a partial file.
    """
    p = Path(path)
    tmp_name = None
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=str(p.parent))
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, p)
        tmp_name = None
    except OSError as ex:
        raise InvalidFileError(f"Unable to save to file: {p}") from ex
    finally:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)


__all__ = ["PathLike", "is_file", "is_bindable", "read_text", "write_text_atomic"]
