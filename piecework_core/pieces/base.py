"""Lifecycle contract shared by every piece kind."""

from __future__ import annotations

import os
import weakref
from enum import Enum
from pathlib import PurePath
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, Mapping

from .errors import PieceConstructionError, PieceStateError

if TYPE_CHECKING:
    from piecework_core.host import Host
    from piecework_core.store import PieceStore


class PieceKind(Enum):
    """Closed set of piece kinds a host knows how to store."""

    MONITOR = "monitor"
    PROVIDER = "provider"


class PieceState(Enum):
    """Lifecycle states for a piece instance."""

    CONSTRUCTED = "constructed"
    ENABLED = "enabled"
    DISABLED = "disabled"
    ORPHANED = "orphaned"


OptionSpec = Mapping[str, tuple[type, Any]]


def _require_text(label: str, value: object) -> str:
    if isinstance(value, os.PathLike):
        value = os.fspath(value)
    if not isinstance(value, str):
        raise PieceConstructionError(f"{label} must be a string, got {type(value).__name__}")
    normalized = value.strip()
    if not normalized:
        raise PieceConstructionError(f"{label} cannot be empty.")
    return normalized


def _resolve_options(owner: str, spec: OptionSpec, options: Mapping[str, Any] | None) -> dict[str, Any]:
    if options is None:
        options = {}
    if not isinstance(options, Mapping):
        raise PieceConstructionError(
            f"options for {owner} must be a mapping, got {type(options).__name__}"
        )

    resolved: dict[str, Any] = {}
    for key, (expected, default) in spec.items():
        # presence, not truthiness: an explicit False/"" must win over the default
        if key not in options:
            resolved[key] = default
            continue
        value = options[key]
        if expected is bool and not isinstance(value, bool):
            raise PieceConstructionError(
                f"option {key!r} for {owner} must be a bool, got {value!r}"
            )
        if not isinstance(value, expected):
            raise PieceConstructionError(
                f"option {key!r} for {owner} must be {expected.__name__}, got {value!r}"
            )
        resolved[key] = value
    return resolved


class Piece:
    """Base class for every loadable piece.

    Concrete kinds set ``kind`` and extend ``option_spec`` with the options
    they recognise. Piece files subclass a concrete kind and pass their name
    and options up to this constructor::

        class Activity(Monitor):
            def __init__(self, host, directory, file):
                super().__init__(host, directory, file, "activity", {"ignore_bots": False})

    Identity (``directory``, ``file``, ``name``, ``kind``) and the resolved
    options are read-only. ``enabled`` is the only mutable field and has no
    effect on store membership.
    """

    kind: ClassVar[PieceKind]
    option_spec: ClassVar[OptionSpec] = {"enabled": (bool, True)}

    def __init__(
        self,
        host: Host,
        directory: str | os.PathLike[str],
        file: str | os.PathLike[str],
        name: str | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> None:
        owner = type(self).__name__
        if not isinstance(getattr(type(self), "kind", None), PieceKind):
            raise PieceConstructionError(f"{owner} does not declare a piece kind")
        if host is None:
            raise PieceConstructionError(f"{owner} requires a host reference")
        try:
            self._host_ref: weakref.ref[Host] = weakref.ref(host)
        except TypeError as exc:
            raise PieceConstructionError(
                f"host for {owner} must support weak references"
            ) from exc

        self._directory = _require_text("directory", directory)
        self._file = _require_text("file", file)
        self._name = _require_text("name", PurePath(self._file).stem if name is None else name)
        if ":" in self._name:
            raise PieceConstructionError("name may not contain ':'.")

        resolved = _resolve_options(owner, self.option_spec, options)
        self.enabled: bool = resolved.pop("enabled")
        self._options = MappingProxyType(resolved)
        self._initialized = False

    @property
    def directory(self) -> str:
        return self._directory

    @property
    def file(self) -> str:
        return self._file

    @property
    def locator(self) -> tuple[str, str]:
        """The ``(directory, file)`` pair this piece reloads from."""

        return self._directory, self._file

    @property
    def name(self) -> str:
        return self._name

    @property
    def options(self) -> Mapping[str, Any]:
        """Kind-specific options resolved at construction."""

        return self._options

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def host(self) -> Host:
        host = self._host_ref()
        if host is None:
            raise PieceStateError(f"host for {self.kind.value}:{self.name} is gone")
        return host

    @property
    def store(self) -> PieceStore:
        """The host store that holds pieces of this kind."""

        return self.host.store_for(self.kind)

    @property
    def state(self) -> PieceState:
        if not self._initialized:
            return PieceState.CONSTRUCTED
        host = self._host_ref()
        if host is None or host.store_for(self.kind).get(self.name) is not self:
            return PieceState.ORPHANED
        return PieceState.ENABLED if self.enabled else PieceState.DISABLED

    def enable(self) -> Piece:
        self.enabled = True
        return self

    def disable(self) -> Piece:
        self.enabled = False
        return self

    async def init(self) -> None:
        """Optional async setup, run once before the piece is registered."""

    def run(self, *args: Any) -> Any:
        """Behaviour entry point; the host is the only caller."""

    async def reload(self) -> Piece:
        """Build, initialize and register a fresh instance from this piece's locator.

        The store only swaps the new instance in once its ``init()`` has
        succeeded, so on any failure this instance stays registered and the
        error propagates to the caller.
        """

        return await self.store.materialize(self._directory, self._file, replacing=self)

    def unload(self) -> bool:
        """Remove this exact instance from its store; ``False`` when absent."""

        host = self._host_ref()
        if host is None:
            return False
        return host.store_for(self.kind).delete(self)

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "kind":
            raise AttributeError("kind is fixed by the piece type")
        super().__setattr__(name, value)

    def _mark_initialized(self) -> None:
        if self._initialized:
            raise PieceStateError(f"{self.kind.value}:{self.name} is already initialized")
        self._initialized = True

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.kind.value}:{self.name} {self.state.value}>"
