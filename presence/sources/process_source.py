"""
Line reader for executable config sources.

Runs the config path as a subprocess and hands its raw stdout back one line at a
time. The caller owns the process lifetime and must call ``close()`` once it is
done reading, which kills the process and anything it spawned.
"""

import asyncio
import logging
import os
import signal
from pathlib import Path

DEFAULT_LINE_LIMIT = 1024 * 1024


class ProcessSource:
    """A subprocess whose stdout is consumed line by line."""

    def __init__(self, path: Path | str, *, line_limit: int = DEFAULT_LINE_LIMIT) -> None:
        self.path = Path(path)
        self.line_limit = line_limit
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._process: asyncio.subprocess.Process | None = None

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode if self._process else None

    async def start(self) -> None:
        """
        Spawn the config executable in its own process group.

        Raises:
            OSError: If the executable cannot be started
            RuntimeError: If the process was already started
        """
        if self._process is not None:
            raise RuntimeError(f"Process for {self.path} was already started")

        self._process = await asyncio.create_subprocess_exec(
            str(self.path),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            limit=self.line_limit,
            start_new_session=True,
        )
        self.logger.debug(f"Started config process {self.path} (pid {self._process.pid})")

    async def read_line(self) -> bytes | None:
        """
        Read the next line from the process stdout.

        Returns:
            The raw line without its trailing newline, or None once stdout is closed

        Raises:
            ValueError: If a line exceeds the configured line limit
            OSError: If reading from the pipe fails
        """
        if self._process is None or self._process.stdout is None:
            raise RuntimeError("Process has not been started")

        line = await self._process.stdout.readline()
        if not line:
            return None
        return line.rstrip(b"\r\n")

    async def close(self) -> None:
        """Kill the process group and reap the process."""
        process = self._process
        if process is None:
            return

        # Children inherit the stdout pipe, and wait() only returns once it is closed
        try:
            os.killpg(process.pid, signal.SIGKILL)
        except ProcessLookupError:
            pass
        else:
            self.logger.debug(f"Killed config process group {self.path} (pid {process.pid})")

        await process.wait()
