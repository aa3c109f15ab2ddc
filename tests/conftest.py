"""Shared fixtures for piecework tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Callable

import pytest

from piecework_core.config import HostConfig
from piecework_core.host import Host

FIXTURE_ROOT = Path(__file__).parent / "fixtures" / "pieces"


@pytest.fixture
def host(tmp_path: Path) -> Host:
    """A host with no builtin pieces and a throwaway data dir."""

    return Host(HostConfig(builtin_pieces=False, data_dir=tmp_path / "data"))


@pytest.fixture
def fixture_host(tmp_path: Path) -> Host:
    """A host configured to load the fixture pieces."""

    config = HostConfig(
        builtin_pieces=False,
        directories=(FIXTURE_ROOT,),
        data_dir=tmp_path / "data",
        provider="memory",
    )
    return Host(config)


@pytest.fixture
def write_piece(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write piece source under ``tmp_path/pieces`` and return that directory."""

    root = tmp_path / "pieces"

    def write(file: str, source: str) -> Path:
        path = root / file
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source).lstrip())
        return root

    return write
