"""Pieces shipped with piecework and loaded before user pieces."""

from pathlib import Path

BUILTIN_ROOT = Path(__file__).resolve().parent

__all__ = ["BUILTIN_ROOT"]
