"""Flat-file provider storing each entry as a JSON document."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path
from typing import Any

from piecework_core.pieces import Provider

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class JSONProvider(Provider):
    """Tables are directories under the host data dir, entries are ``<id>.json`` files."""

    def __init__(self, host, directory, file) -> None:
        super().__init__(
            host,
            directory,
            file,
            "json",
            {"description": "flatfile JSON storage", "sql": False},
        )
        self.base_dir: Path | None = None

    async def init(self) -> None:
        base_dir = Path(self.host.config.data_dir) / "json"
        # raises when the path exists as a file, which keeps the provider unregistered
        await asyncio.to_thread(base_dir.mkdir, parents=True, exist_ok=True)
        self.base_dir = base_dir
        logger.debug("json provider storing data in %s", base_dir)

    def _table(self, table: str) -> Path:
        if self.base_dir is None:
            raise RuntimeError("json provider used before init()")
        if not _SAFE_KEY.match(table):
            raise ValueError(f"invalid table name {table!r}")
        return self.base_dir / table

    def _entry(self, table: str, entry_id: str) -> Path:
        if not _SAFE_KEY.match(entry_id):
            raise ValueError(f"invalid entry id {entry_id!r}")
        return self._table(table) / f"{entry_id}.json"

    # blocking filesystem work runs in a worker thread, off the event loop

    async def has_table(self, table: str) -> bool:
        return await asyncio.to_thread(self._table(table).is_dir)

    async def create_table(self, table: str) -> None:
        await asyncio.to_thread(self._table(table).mkdir, parents=True, exist_ok=True)

    async def delete_table(self, table: str) -> bool:
        return await asyncio.to_thread(self._delete_table, self._table(table))

    async def get(self, table: str, entry_id: str) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._read, self._entry(table, entry_id))

    async def get_all(self, table: str) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self._read_all, self._table(table))

    async def set(self, table: str, entry_id: str, data: dict[str, Any]) -> None:
        document = {**data, "id": entry_id}
        await asyncio.to_thread(self._write, self._entry(table, entry_id), document)

    async def delete(self, table: str, entry_id: str) -> bool:
        return await asyncio.to_thread(self._unlink, self._entry(table, entry_id))

    @staticmethod
    def _read(path: Path) -> dict[str, Any] | None:
        if not path.is_file():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    @staticmethod
    def _read_all(path: Path) -> list[dict[str, Any]]:
        if not path.is_dir():
            return []
        return [
            json.loads(entry.read_text(encoding="utf-8"))
            for entry in sorted(path.glob("*.json"))
        ]

    @staticmethod
    def _write(path: Path, document: dict[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(document, indent=2, sort_keys=True), encoding="utf-8")

    @staticmethod
    def _unlink(path: Path) -> bool:
        if not path.is_file():
            return False
        path.unlink()
        return True

    @staticmethod
    def _delete_table(path: Path) -> bool:
        if not path.is_dir():
            return False
        for entry in path.glob("*.json"):
            entry.unlink()
        path.rmdir()
        return True
