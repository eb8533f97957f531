"""Pytest configuration and fixtures for the rich presence config source tests."""

import asyncio
import json
import stat
import textwrap
from pathlib import Path
from typing import Any, Callable

import pytest


class FakeWatcher:
    """Change watcher double that is triggered by hand."""

    def __init__(self, fail_with: Exception | None = None) -> None:
        self.fail_with = fail_with
        self.started = False
        self.stopped = False
        self.arm_count = 0
        self._changed = asyncio.Event()

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.started = True

    def arm(self) -> None:
        self.arm_count += 1
        self._changed.clear()

    async def wait(self) -> None:
        await self._changed.wait()
        self._changed.clear()

    def trigger(self) -> None:
        self._changed.set()

    def stop(self) -> None:
        self.stopped = True

    def get_status(self) -> dict[str, Any]:
        return {"is_watching": self.started and not self.stopped}


class FakeProcess:
    """Process source double that replays lines and records its lifecycle."""

    def __init__(self, path: Path, lines: list[str | bytes], keep_open: bool, start_error: Exception | None) -> None:
        self.path = path
        self.lines = list(lines)
        self.keep_open = keep_open
        self.start_error = start_error
        self.started = False
        self.closed = False
        self._never = asyncio.Event()

    async def start(self) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def read_line(self) -> bytes | None:
        if self.lines:
            await asyncio.sleep(0)
            line = self.lines.pop(0)
            return line if isinstance(line, bytes) else line.encode()
        if self.keep_open:
            # Simulates a process that is still running but quiet
            await self._never.wait()
        return None

    async def close(self) -> None:
        self.closed = True


class FakeProcessFactory:
    """Builds FakeProcess instances and keeps every one it made."""

    def __init__(
        self, lines: list[str | bytes] | None = None, keep_open: bool = False, start_error: Exception | None = None
    ) -> None:
        self.lines = lines or []
        self.keep_open = keep_open
        self.start_error = start_error
        self.processes: list[FakeProcess] = []

    def __call__(self, path: Path) -> FakeProcess:
        process = FakeProcess(path, self.lines, self.keep_open, self.start_error)
        self.processes.append(process)
        return process


@pytest.fixture
def fake_watcher() -> FakeWatcher:
    """A change watcher triggered manually via ``trigger()``."""
    return FakeWatcher()


@pytest.fixture
def write_script(tmp_path: Path) -> Callable[..., Path]:
    """Write an executable shell script and return its path."""

    def _write(body: str, name: str = "presence.sh") -> Path:
        script = tmp_path / name
        script.write_text("#!/bin/sh\n" + textwrap.dedent(body).lstrip("\n"))
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return _write


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    """Write a plain JSON config file and return its path."""

    def _write(content: Any, name: str = "config.json") -> Path:
        config = tmp_path / name
        config.write_text(content if isinstance(content, str) else json.dumps(content))
        return config

    return _write


@pytest.fixture
def process_factory() -> type[FakeProcessFactory]:
    """The FakeProcessFactory class, to be called with the lines to replay."""
    return FakeProcessFactory


def _process_alive(pid: int) -> bool:
    try:
        stat_line = Path(f"/proc/{pid}/stat").read_text()
    except FileNotFoundError:
        return False
    # Unreaped zombies keep their /proc entry; the state follows the command name
    return stat_line.rsplit(")", 1)[1].split()[0] != "Z"


@pytest.fixture
def process_alive() -> Callable[[int], bool]:
    """Whether a pid belongs to a live, non-zombie process."""
    return _process_alive
