"""Message-observing pieces."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, ClassVar

from .base import OptionSpec, Piece, PieceKind

if TYPE_CHECKING:
    from piecework_core.messages import Message


class Monitor(Piece):
    """Base class for pieces that observe every dispatched message.

    ``ignore_bots`` and ``ignore_self`` are filtering hints: the host applies
    them before calling ``run``, so a monitor never has to check the author
    itself.
    """

    kind: ClassVar[PieceKind] = PieceKind.MONITOR
    option_spec: ClassVar[OptionSpec] = {
        **Piece.option_spec,
        "ignore_bots": (bool, True),
        "ignore_self": (bool, True),
    }

    @property
    def ignore_bots(self) -> bool:
        return self._options["ignore_bots"]

    @property
    def ignore_self(self) -> bool:
        return self._options["ignore_self"]

    def run(self, message: Message) -> Awaitable[Any] | None:
        """Handle ``message``; overridden by concrete monitors."""
