"""Durable storage backends for the bus cache."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Protocol


class CacheStore(Protocol):
    """Raw byte storage for the serialized cache document."""

    def read(self) -> bytes: ...

    def write(self, data: bytes) -> None: ...


class FileCacheStore:
    """Cache stored in a single JSON file.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a crash mid-write never leaves a truncated cache behind.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def read(self) -> bytes:
        return self.path.read_bytes()

    def write(self, data: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
