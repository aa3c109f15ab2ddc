"""Piece base classes and the lifecycle contract they share."""

from .base import Piece, PieceKind, PieceState
from .errors import (
    PieceConstructionError,
    PieceError,
    PieceInitError,
    PieceStateError,
)
from .monitor import Monitor
from .provider import Provider

PIECE_TYPES: dict[PieceKind, type[Piece]] = {
    PieceKind.MONITOR: Monitor,
    PieceKind.PROVIDER: Provider,
}

__all__ = [
    "Piece",
    "PieceKind",
    "PieceState",
    "Monitor",
    "Provider",
    "PIECE_TYPES",
    "PieceError",
    "PieceConstructionError",
    "PieceInitError",
    "PieceStateError",
]
