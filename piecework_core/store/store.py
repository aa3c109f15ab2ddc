"""In-memory store holding the live instance of every piece of one kind."""

from __future__ import annotations

import logging
import os
import weakref
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Iterator

from piecework_core.pieces import (
    PIECE_TYPES,
    Piece,
    PieceConstructionError,
    PieceError,
    PieceInitError,
    PieceKind,
    PieceStateError,
)

from .errors import PieceResolutionError
from .loader import PieceLoader

if TYPE_CHECKING:
    from piecework_core.host import Host


@dataclass
class LoadReport:
    """Outcome of loading every piece file of one kind."""

    kind: PieceKind
    loaded: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class PieceStore:
    """Keyed store of one piece kind.

    The store is the only place its ``name -> piece`` mapping changes. A
    piece reaches the mapping only through ``set``, and ``materialize`` calls
    ``set`` last, after construction and ``init()`` have both succeeded.
    """

    def __init__(self, host: Host, kind: PieceKind) -> None:
        self.kind = kind
        self.holds: type[Piece] = PIECE_TYPES[kind]
        self._host_ref: weakref.ref[Host] = weakref.ref(host)
        self._loader = PieceLoader(self.holds)
        self._pieces: dict[str, Piece] = {}
        self._logger = logging.getLogger(__name__)

    @property
    def host(self) -> Host:
        host = self._host_ref()
        if host is None:
            raise PieceStateError(f"host for the {self.kind.value} store is gone")
        return host

    def __len__(self) -> int:
        return len(self._pieces)

    def __iter__(self) -> Iterator[Piece]:
        return iter(tuple(self._pieces.values()))

    def __contains__(self, name: object) -> bool:
        return name in self._pieces

    def get(self, name: str) -> Piece | None:
        return self._pieces.get(name)

    def names(self) -> tuple[str, ...]:
        return tuple(self._pieces)

    def values(self) -> tuple[Piece, ...]:
        """Snapshot of the live instances in registration order."""

        return tuple(self._pieces.values())

    def load(self, directory: str | os.PathLike[str], file: str | os.PathLike[str]) -> Piece:
        """Resolve a locator and construct its piece without registering it."""

        directory = os.fspath(directory)
        file = os.fspath(file)
        piece_cls = self._loader.load(directory, file)
        try:
            piece = piece_cls(self.host, directory, file)
        except PieceError:
            raise
        except Exception as exc:
            raise PieceConstructionError(
                f"unable to construct {piece_cls.__name__} from {file}: {exc}"
            ) from exc
        return piece

    async def initialize(self, piece: Piece) -> None:
        """Run ``piece.init()`` exactly once."""

        if piece.initialized:
            raise PieceStateError(f"{self.kind.value}:{piece.name} is already initialized")
        try:
            await piece.init()
        except Exception as exc:
            raise PieceInitError(
                f"{self.kind.value}:{piece.name} failed to initialize: {exc}"
            ) from exc
        piece._mark_initialized()

    def set(self, piece: Piece) -> Piece | None:
        """Register an initialized piece, returning the instance it replaced."""

        if not isinstance(piece, self.holds):
            raise PieceStateError(f"{piece!r} cannot be stored as a {self.kind.value}")
        if not piece.initialized:
            raise PieceStateError(f"{self.kind.value}:{piece.name} has not been initialized")
        previous = self._pieces.get(piece.name)
        # assigning an existing key keeps the slot's position in dispatch order
        self._pieces[piece.name] = piece
        return previous

    def delete(self, piece: Piece | str) -> bool:
        """Remove the given instance (or name); ``False`` when nothing matched."""

        name = piece if isinstance(piece, str) else piece.name
        current = self._pieces.get(name)
        if current is None:
            return False
        if not isinstance(piece, str) and current is not piece:
            return False
        del self._pieces[name]
        self._logger.info("unloaded %s:%s", self.kind.value, name)
        self._emit("piece.unloaded", {"kind": self.kind.value, "name": name})
        return True

    async def materialize(
        self,
        directory: str | os.PathLike[str],
        file: str | os.PathLike[str],
        *,
        replacing: Piece | None = None,
    ) -> Piece:
        """Load, initialize and register a piece from a locator."""

        directory = os.fspath(directory)
        file = os.fspath(file)
        try:
            piece = self.load(directory, file)
            if replacing is not None and piece.name != replacing.name:
                raise PieceResolutionError(
                    f"{file} now defines {piece.name!r}, expected {replacing.name!r}",
                    directory=directory,
                    file=file,
                )
            await self.initialize(piece)
        except PieceError as exc:
            self._emit(
                "piece.failed",
                {"kind": self.kind.value, "directory": directory, "file": file, "error": str(exc)},
            )
            raise

        self.host.apply_config(piece)
        previous = self.set(piece)
        reloaded = replacing is not None
        self._logger.info(
            "%s %s:%s from %s",
            "reloaded" if reloaded else "loaded",
            self.kind.value,
            piece.name,
            Path(directory) / file,
        )
        self._emit(
            "piece.reloaded" if reloaded else "piece.loaded",
            {
                "kind": self.kind.value,
                "name": piece.name,
                "replaced": previous is not None,
            },
        )
        return piece

    @staticmethod
    def walk(directory: str | os.PathLike[str]) -> list[str]:
        """List piece files under ``directory`` relative to it, in stable order."""

        root = Path(directory)
        if not root.is_dir():
            return []
        files: list[str] = []
        for path in root.rglob("*.py"):
            relative = path.relative_to(root)
            if any(part.startswith("_") for part in relative.parts):
                continue
            files.append(relative.as_posix())
        return sorted(files)

    async def load_all(self, directories: Iterable[str | os.PathLike[str]]) -> LoadReport:
        """Materialize every piece file; later directories override earlier ones."""

        report = LoadReport(kind=self.kind)
        for directory in directories:
            directory = os.fspath(directory)
            files = self.walk(directory)
            self._logger.debug("found %d %s files in %s", len(files), self.kind.value, directory)
            for file in files:
                try:
                    piece = await self.materialize(directory, file)
                except PieceError as exc:
                    report.failed[f"{directory}/{file}"] = str(exc)
                    self._logger.error("%s %s failed to load: %s", self.kind.value, file, exc)
                    continue
                if piece.name not in report.loaded:
                    report.loaded.append(piece.name)
        return report

    def _emit(self, event_name: str, payload: dict[str, object]) -> None:
        host = self._host_ref()
        if host is not None:
            host.events.emit(event_name, payload)
