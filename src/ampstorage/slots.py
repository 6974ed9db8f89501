"""Durable local slots backing :class:`~ampstorage.bindings.LocalBinding`.

A slot storage is a tiny synchronous string key/value API.  Its methods
may raise at any time (full disk, permissions, corrupt files); the local
binding is responsible for converting those faults.
"""

from __future__ import annotations

import contextlib
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol
from urllib.parse import quote, unquote

_logger = logging.getLogger(__name__)

_SLOT_SUFFIX = ".slot"


class SlotStorage(Protocol):
    """Structural interface of a durable local slot storage."""

    def get_item(self, key: str) -> str | None:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...


class MemorySlotStorage:
    """Slot storage living in process memory.

    Durable only for the lifetime of the process; shared by every context
    holding the same instance.
    """

    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._items)


class FileSlotStorage:
    """Slot storage keeping one file per slot in a directory.

    Slot keys are percent-quoted into file names.  Writes go through a
    temporary file and ``os.replace`` so a reader never sees a partial slot.
    """

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        return self._directory / f"{quote(key, safe='')}{_SLOT_SUFFIX}"

    def get_item(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set_item(self, key: str, value: str) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=".tmp-", suffix=_SLOT_SUFFIX)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp_name, path)
        except BaseException:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
            raise
        _logger.debug("Wrote slot %s (%d chars) to %s", key, len(value), path)

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        if not self._directory.is_dir():
            return []
        return sorted(
            unquote(path.name[: -len(_SLOT_SUFFIX)])
            for path in self._directory.glob(f"*{_SLOT_SUFFIX}")
            if not path.name.startswith(".tmp-")
        )

