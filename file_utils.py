# file_utils.py - Exchange file IO: atomic JSON writes, strict JSON reads

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def atomic_write_text(path: Path, content: str, encoding: str = "utf-8") -> None:
    """
    Write an export next to its destination and swap it in with os.replace, so
    a reader never sees a half-written exchange file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding=encoding) as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def atomic_write_json(path: Path, document: Any) -> None:
    """Serialize document (no NaN/inf) and write it atomically. Raises ValueError/OSError."""
    atomic_write_text(path, json.dumps(document, indent=2, allow_nan=False))


def _reject_constant(token: str):
    raise ValueError(f"Non-finite number {token} is not allowed")


def read_json(path: Path, allow_nan: bool = True) -> Any:
    """
    Raises OSError if unreadable, ValueError (json.JSONDecodeError included) if
    malformed, or if allow_nan is False and the file holds NaN/Infinity tokens.
    """
    with open(path, "r", encoding="utf-8") as f:
        if allow_nan:
            return json.load(f)
        return json.load(f, parse_constant=_reject_constant)
