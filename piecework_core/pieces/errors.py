"""Piece-specific error types."""


class PieceError(Exception):
    """Base type for piece-related failures."""


class PieceConstructionError(PieceError):
    """Raised when a piece is built with malformed identity fields or options."""


class PieceInitError(PieceError):
    """Raised when a piece's ``init()`` hook fails."""


class PieceStateError(PieceError):
    """Raised on an invalid lifecycle transition."""
