"""Host startup, message dispatch and provider selection."""

from __future__ import annotations

from pathlib import Path

import pytest

from piecework_core.config import HostConfig
from piecework_core.host import Host
from piecework_core.messages import Author, Message
from piecework_core.pieces import PieceKind
from piecework_core.store import PieceNotFoundError, PieceUnavailableError

FIXTURE_ROOT = Path(__file__).parent / "fixtures" / "pieces"


def _message(content: str, *, author: str = "alice", bot: bool = False) -> Message:
    return Message(content=content, author=Author(id=author, bot=bot), channel="general")


@pytest.mark.asyncio
async def test_start_loads_fixture_pieces_and_reports_failures(fixture_host: Host) -> None:
    ready = []
    fixture_host.events.on("ready", lambda event: ready.append(event.payload))

    reports = await fixture_host.start()

    assert fixture_host.started is True
    assert fixture_host.monitors.names() == ("broken", "echo", "listener")
    assert fixture_host.providers.names() == ("memory",)
    assert reports[PieceKind.MONITOR].ok is True
    assert list(reports[PieceKind.PROVIDER].failed) == [
        f"{FIXTURE_ROOT / 'providers'}/failing.py"
    ]
    assert ready == [{"provider": ["memory"], "monitor": ["broken", "echo", "listener"]}]


@pytest.mark.asyncio
async def test_dispatch_runs_monitors_in_registration_order(fixture_host: Host) -> None:
    await fixture_host.start()

    report = await fixture_host.dispatch(_message("hello"))

    assert report.ran == ["echo", "listener"]
    assert list(report.errors) == ["broken"]
    assert fixture_host.monitors.get("echo").seen == ["hello"]
    assert fixture_host.monitors.get("listener").seen == ["hello"]


@pytest.mark.asyncio
async def test_dispatch_applies_bot_and_self_filters(fixture_host: Host) -> None:
    await fixture_host.start()
    fixture_host.monitors.get("broken").disable()

    from_bot = await fixture_host.dispatch(_message("beep", author="robot", bot=True))
    from_self = await fixture_host.dispatch(_message("me", author=fixture_host.user_id))

    assert from_bot.skipped == {"broken": "disabled", "echo": "bot"}
    assert from_bot.ran == ["listener"]
    assert from_self.skipped == {"broken": "disabled", "echo": "self"}
    assert fixture_host.monitors.get("echo").seen == []
    assert fixture_host.monitors.get("listener").seen == ["beep", "me"]


@pytest.mark.asyncio
async def test_disabled_monitor_can_be_enabled_again(fixture_host: Host) -> None:
    await fixture_host.start()
    echo = fixture_host.monitors.get("echo")

    echo.disable()
    await fixture_host.dispatch(_message("first"))
    echo.enable()
    await fixture_host.dispatch(_message("second"))

    assert echo.seen == ["second"]
    assert "echo" in fixture_host.monitors


@pytest.mark.asyncio
async def test_monitor_errors_are_isolated_and_announced(fixture_host: Host, caplog) -> None:
    errors = []
    fixture_host.events.on("monitor.error", lambda event: errors.append(event.payload))
    await fixture_host.start()

    report = await fixture_host.dispatch(_message("boom"))

    assert isinstance(report.errors["broken"], RuntimeError)
    assert errors == [{"name": "broken", "error": "boom: boom", "channel": "general"}]
    assert "monitor broken failed" in caplog.text
    assert report.ran == ["echo", "listener"]


@pytest.mark.asyncio
async def test_reload_during_dispatch_does_not_redirect_the_message(
    host: Host, write_piece
) -> None:
    root = write_piece(
        "a_reloader.py",
        """
        from piecework_core.pieces import Monitor


        class Reloader(Monitor):
            def __init__(self, host, directory, file):
                super().__init__(host, directory, file, "reloader")
                self.replacements = []

            async def run(self, message):
                target = self.store.get("recorder")
                self.replacements.append(await target.reload())
        """,
    )
    write_piece(
        "b_recorder.py",
        """
        from piecework_core.pieces import Monitor


        class Recorder(Monitor):
            def __init__(self, host, directory, file):
                super().__init__(host, directory, file, "recorder")
                self.seen = []

            def run(self, message):
                self.seen.append(message.content)
        """,
    )
    await host.monitors.load_all([root])
    original = host.monitors.get("recorder")

    await host.dispatch(_message("in flight"))

    replacement = host.monitors.get("reloader").replacements[0]
    assert host.monitors.get("recorder") is replacement
    assert original.seen == ["in flight"]
    assert replacement.seen == []

    # the second dispatch snapshots the first replacement before reloading it again
    await host.dispatch(_message("next"))
    assert replacement.seen == ["next"]
    assert host.monitors.get("recorder") is not replacement


@pytest.mark.asyncio
async def test_configured_disabled_pieces_start_disabled(tmp_path: Path) -> None:
    host = Host(
        HostConfig(
            builtin_pieces=False,
            directories=(FIXTURE_ROOT,),
            disabled=frozenset({"monitor:echo"}),
            data_dir=tmp_path,
            provider="memory",
        )
    )
    await host.start()

    report = await host.dispatch(_message("hi"))

    assert host.monitors.get("echo").enabled is False
    assert report.skipped["echo"] == "disabled"


@pytest.mark.asyncio
async def test_get_provider_by_default_and_by_name(fixture_host: Host) -> None:
    await fixture_host.start()
    memory = fixture_host.providers.get("memory")

    assert fixture_host.get_provider() is memory
    assert fixture_host.get_provider("memory") is memory
    assert memory.opened is True


@pytest.mark.asyncio
async def test_get_provider_refuses_missing_or_disabled(fixture_host: Host) -> None:
    await fixture_host.start()

    with pytest.raises(PieceNotFoundError):
        fixture_host.get_provider("failing")

    fixture_host.get_provider().disable()
    with pytest.raises(PieceUnavailableError):
        fixture_host.get_provider()


def test_store_for_accepts_kind_or_value(host: Host) -> None:
    assert host.store_for(PieceKind.MONITOR) is host.monitors
    assert host.store_for("provider") is host.providers
    with pytest.raises(PieceNotFoundError):
        host.store_for("command")


def test_piece_directories_put_builtins_first(tmp_path: Path) -> None:
    host = Host(HostConfig(directories=(tmp_path / "a", tmp_path / "b"), data_dir=tmp_path))

    directories = host.piece_directories(PieceKind.MONITOR)

    assert directories[0].name == "monitors"
    assert directories[0].parent.name == "piecework_builtin"
    assert directories[1:] == [tmp_path / "a" / "monitors", tmp_path / "b" / "monitors"]


@pytest.mark.asyncio
async def test_builtin_pieces_load(tmp_path: Path) -> None:
    host = Host(HostConfig(data_dir=tmp_path / "data"))

    await host.start()
    report = await host.dispatch(_message("hi"))
    await host.dispatch(_message("again"))

    assert "activity" in host.monitors
    assert "json" in host.providers
    assert report.ran == ["activity"]
    assert host.monitors.get("activity").counts["general"] == 2
    assert host.status()["monitors"] == {"activity": True}
    assert host.status()["providers"] == {"json": True}


@pytest.mark.asyncio
async def test_raising_error_listener_does_not_stop_dispatch(fixture_host: Host) -> None:
    def explode(event):
        raise ValueError("listener broke")

    fixture_host.events.on("monitor.error", explode)
    await fixture_host.start()

    report = await fixture_host.dispatch(_message("hello"))

    assert list(report.errors) == ["broken"]
    assert report.ran == ["echo", "listener"]
