"""Storage-backend pieces."""

from __future__ import annotations

from typing import ClassVar

from .base import OptionSpec, Piece, PieceKind


class Provider(Piece):
    """Base class for storage providers.

    ``sql`` tells the storage layer whether to build structured queries or
    use key-value access against this provider. Concrete providers open
    their backing storage in ``init()``; a provider whose ``init()`` fails is
    never registered and so can never be selected.
    """

    kind: ClassVar[PieceKind] = PieceKind.PROVIDER
    option_spec: ClassVar[OptionSpec] = {
        **Piece.option_spec,
        "description": (str, ""),
        "sql": (bool, False),
    }

    @property
    def description(self) -> str:
        return self._options["description"]

    @property
    def sql(self) -> bool:
        return self._options["sql"]
