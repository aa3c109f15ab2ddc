"""Lifecycle notifications announced by piece stores and the host."""

from __future__ import annotations

import bisect
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

__all__ = ["Event", "Listener", "EventBus", "LIFECYCLE_EVENTS"]

logger = logging.getLogger(__name__)

LIFECYCLE_EVENTS = (
    "piece.loaded",
    "piece.reloaded",
    "piece.unloaded",
    "piece.failed",
    "monitor.error",
    "ready",
)


@dataclass(frozen=True)
class Event:
    """One lifecycle notification."""

    name: str
    payload: dict[str, Any]

    @property
    def subject(self) -> str | None:
        """``kind:name`` of the piece the event concerns, when it names one."""

        name = self.payload.get("name")
        kind = self.payload.get("kind")
        if name and kind:
            return f"{kind}:{name}"
        return name


Listener = Callable[[Event], None]


@dataclass(frozen=True, order=True)
class _Subscription:
    rank: tuple[int, int]
    listener: Listener = field(compare=False)


class EventBus:
    """Delivers lifecycle events to listeners, highest priority first.

    Listeners subscribed with the same priority run in subscription order.
    A listener that raises is logged and skipped; ``emit`` never raises into
    the store or host announcing the change.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[_Subscription]] = {
            event_name: [] for event_name in LIFECYCLE_EVENTS
        }
        self._counter = itertools.count()

    def _listeners_of(self, event_name: str) -> list[_Subscription]:
        try:
            return self._subscriptions[event_name]
        except KeyError:
            known = ", ".join(LIFECYCLE_EVENTS)
            raise ValueError(f"unknown lifecycle event {event_name!r} (expected one of {known})") from None

    def on(self, event_name: str, listener: Listener, priority: int = 0) -> None:
        """Subscribe ``listener`` to ``event_name``; higher priority runs first."""

        subscription = _Subscription(rank=(-priority, next(self._counter)), listener=listener)
        bisect.insort(self._listeners_of(event_name), subscription)

    def off(self, event_name: str, listener: Listener) -> bool:
        """Drop every subscription of ``listener`` to ``event_name``."""

        subscriptions = self._listeners_of(event_name)
        kept = [item for item in subscriptions if item.listener is not listener]
        removed = len(subscriptions) - len(kept)
        subscriptions[:] = kept
        return removed > 0

    def emit(self, event_name: str, payload: Mapping[str, Any]) -> int:
        """Deliver ``payload`` to every listener; return how many of them failed."""

        event = Event(event_name, dict(payload))
        failures = 0
        # a snapshot, so listeners may subscribe or unsubscribe while being notified
        for subscription in list(self._listeners_of(event_name)):
            try:
                subscription.listener(event)
            except Exception:
                failures += 1
                logger.exception(
                    "%s listener %r failed for %s",
                    event_name,
                    subscription.listener,
                    event.subject or "host",
                )
        return failures
