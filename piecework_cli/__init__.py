"""Command line entrypoint for piecework."""

from .main import main

__all__ = ["main"]
