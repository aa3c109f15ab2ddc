"""Custom errors raised by piece stores."""

from __future__ import annotations

from piecework_core.pieces.errors import PieceError


class PieceStoreError(PieceError):
    """Base class for piece store errors."""


class PieceResolutionError(PieceStoreError):
    """Raised when a locator does not resolve to a loadable piece class."""

    def __init__(self, message: str, *, directory: str, file: str) -> None:
        super().__init__(message)
        self.directory = directory
        self.file = file


class PieceNotFoundError(PieceStoreError):
    """Raised when a piece cannot be found by name."""


class PieceUnavailableError(PieceStoreError):
    """Raised when a piece exists but is disabled."""
