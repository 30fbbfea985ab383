"""File access used for loading CA certificates."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class FileAccess(Protocol):
    def exists(self, path: str) -> bool: ...

    def read(self, path: str) -> bytes: ...


class LocalFileAccess:
    """FileAccess backed by the local filesystem."""

    def exists(self, path: str) -> bool:
        return Path(path).is_file()

    def read(self, path: str) -> bytes:
        return Path(path).read_bytes()
