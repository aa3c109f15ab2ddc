"""Host process that owns the piece stores and drives message dispatch."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from piecework_builtin import BUILTIN_ROOT
from piecework_core.config import HostConfig
from piecework_core.events import EventBus
from piecework_core.messages import Message
from piecework_core.pieces import Monitor, Piece, PieceKind, Provider
from piecework_core.store import (
    LoadReport,
    PieceNotFoundError,
    PieceStore,
    PieceUnavailableError,
)

# providers first, so monitors can reach storage from their own init()
LOAD_ORDER = (PieceKind.PROVIDER, PieceKind.MONITOR)


@dataclass
class DispatchReport:
    """What happened to one message on its way through the monitors."""

    ran: list[str] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)
    errors: dict[str, BaseException] = field(default_factory=dict)


class Host:
    """Owns one store per piece kind and is the only caller of ``Piece.run``."""

    def __init__(
        self,
        config: HostConfig | None = None,
        *,
        events: EventBus | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config or HostConfig()
        self.events = events or EventBus()
        self.logger = logger or logging.getLogger("piecework_core.host")
        self.monitors = PieceStore(self, PieceKind.MONITOR)
        self.providers = PieceStore(self, PieceKind.PROVIDER)
        self._stores = {
            PieceKind.MONITOR: self.monitors,
            PieceKind.PROVIDER: self.providers,
        }
        self._started = False

    @property
    def user_id(self) -> str:
        return self.config.user_id

    @property
    def started(self) -> bool:
        return self._started

    def store_for(self, kind: PieceKind | str) -> PieceStore:
        try:
            return self._stores[PieceKind(kind)]
        except ValueError as exc:
            known = ", ".join(item.value for item in PieceKind)
            raise PieceNotFoundError(f"unknown piece kind {kind!r} (expected one of {known})") from exc

    def piece_directories(self, kind: PieceKind) -> list[Path]:
        """Directories scanned for ``kind``; later entries override earlier ones."""

        subdir = f"{kind.value}s"
        directories: list[Path] = []
        if self.config.builtin_pieces:
            directories.append(BUILTIN_ROOT / subdir)
        directories.extend(directory / subdir for directory in self.config.directories)
        return directories

    def apply_config(self, piece: Piece) -> None:
        """Apply host configuration to a freshly initialized piece."""

        if self.config.is_disabled(piece.kind.value, piece.name):
            piece.disable()
            self.logger.debug("%s:%s disabled by configuration", piece.kind.value, piece.name)

    async def start(self) -> dict[PieceKind, LoadReport]:
        """Load every piece of every kind, then announce readiness."""

        reports: dict[PieceKind, LoadReport] = {}
        for kind in LOAD_ORDER:
            reports[kind] = await self.store_for(kind).load_all(self.piece_directories(kind))
            self.logger.info(
                "loaded %d %s pieces (%d failed)",
                len(reports[kind].loaded),
                kind.value,
                len(reports[kind].failed),
            )
        self._started = True
        self.events.emit(
            "ready",
            {kind.value: list(report.loaded) for kind, report in reports.items()},
        )
        return reports

    def _skip_reason(self, monitor: Monitor, message: Message) -> str | None:
        if not monitor.enabled:
            return "disabled"
        if monitor.ignore_bots and message.author.bot:
            return "bot"
        if monitor.ignore_self and message.author.id == self.user_id:
            return "self"
        return None

    async def dispatch(self, message: Message) -> DispatchReport:
        """Run every eligible monitor against ``message`` in registration order.

        The store is snapshotted up front: a monitor reloaded while this
        dispatch is suspended keeps receiving this message on its old
        instance, and the replacement only sees later messages. An exception
        raised by one monitor is logged and recorded, and the remaining
        monitors still run.
        """

        report = DispatchReport()
        for monitor in self.monitors.values():
            reason = self._skip_reason(monitor, message)
            if reason is not None:
                report.skipped[monitor.name] = reason
                self.logger.debug("monitor %s skipped (%s)", monitor.name, reason)
                continue
            try:
                result = monitor.run(message)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                report.errors[monitor.name] = exc
                self.logger.exception("monitor %s failed while handling a message", monitor.name)
                self.events.emit(
                    "monitor.error",
                    {"name": monitor.name, "error": str(exc), "channel": message.channel},
                )
            else:
                report.ran.append(monitor.name)
        return report

    def get_provider(self, name: str | None = None) -> Provider:
        """Return an enabled provider by name, or the configured default."""

        target = name or self.config.provider
        if not target:
            raise PieceNotFoundError("no provider name given and no default configured")
        provider = self.providers.get(target)
        if provider is None:
            raise PieceNotFoundError(f"provider {target!r} is not loaded")
        if not provider.enabled:
            raise PieceUnavailableError(f"provider {target!r} is disabled")
        return provider

    def status(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "started": self._started,
            "config": str(self.config.path) if self.config.path else "defaults",
            **{
                f"{kind.value}s": {
                    piece.name: piece.enabled for piece in self.store_for(kind).values()
                }
                for kind in LOAD_ORDER
            },
        }
