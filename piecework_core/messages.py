"""Message model delivered to monitors."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Author:
    """Who sent a message."""

    id: str
    bot: bool = False


@dataclass(frozen=True)
class Message:
    """A single incoming message as seen by monitors."""

    content: str
    author: Author
    channel: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
