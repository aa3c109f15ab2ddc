"""Convenience exports for piece stores."""

from .errors import (
    PieceNotFoundError,
    PieceResolutionError,
    PieceStoreError,
    PieceUnavailableError,
)
from .loader import PieceLoader
from .store import LoadReport, PieceStore

__all__ = [
    "PieceStore",
    "PieceLoader",
    "LoadReport",
    "PieceStoreError",
    "PieceResolutionError",
    "PieceNotFoundError",
    "PieceUnavailableError",
]
