from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any


def _replace_atomically(path: Path, data: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=path.name + ".", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    finally:
        try:
            if os.path.exists(tmp):
                os.remove(tmp)
        except OSError:
            pass


def write_atomic_json(path: Path, obj: Any) -> None:
    _replace_atomically(path, json.dumps(obj, ensure_ascii=False, indent=2, sort_keys=True) + "\n")


def write_atomic_text(path: Path, text: str) -> None:
    text = text or ""
    _replace_atomically(path, text if text.endswith("\n") else text + "\n")


def write_once_text(path: Path, text: str) -> None:
    if path.exists():
        raise FileExistsError(str(path))
    write_atomic_text(path, text)
