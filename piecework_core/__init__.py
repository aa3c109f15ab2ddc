"""Core runtime for loadable, hot-reloadable pieces."""

from .config import ConfigError, HostConfig, default_config_path
from .events import Event, EventBus
from .host import DispatchReport, Host
from .messages import Author, Message
from .pieces import Monitor, Piece, PieceKind, PieceState, Provider
from .store import LoadReport, PieceStore

__all__ = [
    "Host",
    "HostConfig",
    "ConfigError",
    "default_config_path",
    "DispatchReport",
    "Event",
    "EventBus",
    "Author",
    "Message",
    "Piece",
    "PieceKind",
    "PieceState",
    "Monitor",
    "Provider",
    "LoadReport",
    "PieceStore",
]
