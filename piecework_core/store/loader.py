"""Import piece files and locate the piece class they define."""

from __future__ import annotations

import importlib.machinery
import importlib.util
import itertools
import sys
from pathlib import Path
from types import ModuleType

from piecework_core.pieces import Piece

from .errors import PieceResolutionError

_MODULE_PREFIX = "_piecework_pieces"
_sequence = itertools.count()


class _SourceOnlyLoader(importlib.machinery.SourceFileLoader):
    """Compiles the piece file on every import; bytecode caches are never read or written."""

    def get_code(self, fullname: str):
        source_path = self.get_filename(fullname)
        return self.source_to_code(self.get_data(source_path), source_path)


class PieceLoader:
    """Responsible for turning one ``(directory, file)`` locator into a piece class."""

    def __init__(self, base: type[Piece]) -> None:
        self.base = base

    def resolve(self, directory: str, file: str) -> Path:
        """Return the absolute path a locator points at."""

        path = (Path(directory) / file).resolve()
        if path.suffix != ".py":
            raise PieceResolutionError(
                f"{file} is not a python source file", directory=directory, file=file
            )
        if not path.is_file():
            raise PieceResolutionError(
                f"{file} does not exist under {directory}", directory=directory, file=file
            )
        return path

    def load(self, directory: str, file: str) -> type[Piece]:
        """Import the piece file fresh and return its piece class."""

        path = self.resolve(directory, file)
        module = self._import_fresh(path, directory, file)
        return self._find_piece_class(module, directory, file)

    def _module_name(self, path: Path) -> str:
        # a new name per import so a reload never sees the previous module object
        return f"{_MODULE_PREFIX}.{self.base.kind.value}.{path.stem}_{next(_sequence)}"

    def _import_fresh(self, path: Path, directory: str, file: str) -> ModuleType:
        module_name = self._module_name(path)
        spec = importlib.util.spec_from_file_location(
            module_name, path, loader=_SourceOnlyLoader(module_name, str(path))
        )
        if spec is None or spec.loader is None:
            raise PieceResolutionError(
                f"unable to build an import spec for {path}", directory=directory, file=file
            )

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            raise PieceResolutionError(
                f"unable to import {file} from {directory}: {exc}",
                directory=directory,
                file=file,
            ) from exc
        finally:
            sys.modules.pop(module_name, None)
        return module

    def _find_piece_class(self, module: ModuleType, directory: str, file: str) -> type[Piece]:
        candidates = [
            candidate
            for candidate in vars(module).values()
            if isinstance(candidate, type)
            and issubclass(candidate, self.base)
            and candidate.__module__ == module.__name__
        ]
        if not candidates:
            raise PieceResolutionError(
                f"{file} does not define a {self.base.__name__} subclass",
                directory=directory,
                file=file,
            )
        if len(candidates) > 1:
            names = ", ".join(sorted(candidate.__name__ for candidate in candidates))
            raise PieceResolutionError(
                f"{file} defines several {self.base.__name__} subclasses: {names}",
                directory=directory,
                file=file,
            )
        return candidates[0]
