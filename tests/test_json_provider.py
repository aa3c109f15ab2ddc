"""Behaviour of the builtin flat-file JSON provider."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path

import pytest

from piecework_builtin import BUILTIN_ROOT
from piecework_core.config import HostConfig
from piecework_core.host import Host
from piecework_core.pieces import PieceInitError
from piecework_core.store import PieceNotFoundError

PROVIDERS = BUILTIN_ROOT / "providers"


def _host(data_dir: Path) -> Host:
    return Host(HostConfig(builtin_pieces=False, data_dir=data_dir))


@pytest.mark.asyncio
async def test_json_provider_metadata_and_storage(tmp_path: Path) -> None:
    host = _host(tmp_path / "data")
    provider = await host.providers.materialize(PROVIDERS, "json.py")

    assert provider.name == "json"
    assert provider.description == "flatfile JSON storage"
    assert provider.sql is False
    assert (tmp_path / "data" / "json").is_dir()

    assert await provider.has_table("users") is False
    await provider.create_table("users")
    await provider.set("users", "alice", {"score": 3})
    await provider.set("users", "bob", {"score": 5})

    assert await provider.has_table("users") is True
    assert await provider.get("users", "alice") == {"id": "alice", "score": 3}
    assert [entry["id"] for entry in await provider.get_all("users")] == ["alice", "bob"]
    assert await provider.delete("users", "alice") is True
    assert await provider.delete("users", "alice") is False
    assert await provider.get("users", "alice") is None
    assert await provider.delete_table("users") is True
    assert await provider.get_all("users") == []


@pytest.mark.asyncio
async def test_json_provider_rejects_path_like_keys(tmp_path: Path) -> None:
    host = _host(tmp_path / "data")
    provider = await host.providers.materialize(PROVIDERS, "json.py")

    with pytest.raises(ValueError):
        await provider.get("../etc", "passwd")
    with pytest.raises(ValueError):
        await provider.set("users", "a/b", {})


@pytest.mark.asyncio
async def test_unusable_data_dir_keeps_provider_unavailable(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "json").write_text("in the way")
    host = _host(data_dir)

    with pytest.raises(PieceInitError):
        await host.providers.materialize(PROVIDERS, "json.py")

    assert "json" not in host.providers
    with pytest.raises(PieceNotFoundError):
        host.get_provider("json")


@pytest.mark.asyncio
async def test_json_provider_file_io_runs_off_the_event_loop(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    host = _host(tmp_path / "data")
    provider = await host.providers.materialize(PROVIDERS, "json.py")
    provider_type = type(provider)
    write = provider_type._write
    threads: list[int] = []

    def recording_write(path, document):
        threads.append(threading.get_ident())
        write(path, document)

    monkeypatch.setattr(provider_type, "_write", staticmethod(recording_write))

    await asyncio.gather(*(provider.set("users", f"user{n}", {"n": n}) for n in range(5)))

    assert len(threads) == 5
    assert threading.get_ident() not in threads
    assert len(await provider.get_all("users")) == 5
