"""
Reloading config source for rich presence updates.

``ConfigSource`` owns one config path and feeds an asyncio queue with update
messages. Every change to the path starts a new generation: the mode is
selected again (executable or plain file), the previous generation's delivery
task is cancelled, and a new one starts. At most one generation delivers
messages at any time.
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

from pydantic import ValidationError

from presence.loaders.static_loader import load_config
from presence.models.update_message import UpdateMessage, parse_update_message
from presence.sources.mode_selector import SourceMode, select_mode
from presence.sources.process_source import DEFAULT_LINE_LIMIT, ProcessSource
from presence.watchers.change_watcher import DEFAULT_DEBOUNCE_DELAY, ChangeWatcher

DEFAULT_CONFIG_PATH = "~/.config/linux-discord-rich-presence/config"

ProcessFactory = Callable[[Path], ProcessSource]


@dataclass
class SourceConfig:
    """Configuration for a reloading config source."""

    config_path: Path = field(
        default_factory=lambda: Path(os.getenv("PRESENCE_CONFIG") or DEFAULT_CONFIG_PATH).expanduser()
    )
    debounce_delay: float = field(
        default_factory=lambda: float(os.getenv("WATCH_DEBOUNCE_DELAY", str(DEFAULT_DEBOUNCE_DELAY)))
    )
    line_limit: int = field(default_factory=lambda: int(os.getenv("PROCESS_LINE_LIMIT", str(DEFAULT_LINE_LIMIT))))
    log_level: str = "INFO"


class ConfigSource:
    """
    Streams update messages from a config path that may change at any time.

    Must be created inside a running event loop. Creating it starts watching
    the path; if the watch cannot be established the constructor raises and
    nothing is left running. Use ``aclose()`` (or ``async with``) to stop it,
    which also kills a running config process.
    """

    def __init__(
        self,
        config: SourceConfig,
        updates: asyncio.Queue[UpdateMessage],
        *,
        watcher: ChangeWatcher | None = None,
        process_factory: ProcessFactory | None = None,
    ) -> None:
        """
        Initialize the config source and start its reload loop.

        Args:
            config: Source configuration
            updates: Queue the update messages are sent to
            watcher: Change watcher for the config path, built from config if not given
            process_factory: Builds the process source for executable configs

        Raises:
            RuntimeError: If no event loop is running
            ValueError: If configuration parameters are invalid
            OSError: If the config path cannot be watched
        """
        self.config = config
        self._validate_config()

        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(getattr(logging, self.config.log_level.upper()))

        loop = asyncio.get_running_loop()

        self.path = Path(self.config.config_path)
        self.updates = updates
        self.process_factory = process_factory or self._default_process_factory
        self.watcher = watcher or ChangeWatcher(self.path, debounce_delay=self.config.debounce_delay)

        self.mode: SourceMode | None = None
        self.generation = 0
        self._delivery_task: asyncio.Task[None] | None = None
        self.start_time = time.time()
        self.stats = {
            "generations": 0,
            "reloads": 0,
            "messages_delivered": 0,
            "parse_errors": 0,
            "load_failures": 0,
            "process_failures": 0,
            "process_deaths": 0,
            "dropped_sends": 0,
        }

        # No watcher means no reloads, so a failure here aborts construction
        self.watcher.start(loop)

        self._task = loop.create_task(self._run(), name=f"config-source:{self.path}")
        self._task.add_done_callback(self._log_task_exit)

    def _validate_config(self) -> None:
        """Validate configuration parameters."""
        if self.config.debounce_delay < 0:
            raise ValueError("Debounce delay must be non-negative")

        if self.config.line_limit <= 0:
            raise ValueError("Line limit must be positive")

        if self.config.log_level.upper() not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {self.config.log_level}")

    def _default_process_factory(self, path: Path) -> ProcessSource:
        return ProcessSource(path, line_limit=self.config.line_limit)

    @property
    def is_running(self) -> bool:
        return not self._task.done()

    async def _run(self) -> None:
        """Reload loop: start a generation, wait for a change, repeat."""
        try:
            while True:
                self._start_generation()
                await self.watcher.wait()

                self.logger.info(f"Config file {self.path} was changed! Restarting...")
                self.stats["reloads"] += 1
                await self._cancel_delivery()
        finally:
            await self._cancel_delivery()

    def _start_generation(self) -> None:
        """Arm the watcher, select the mode and start delivering from it."""
        # Arm before reading the path so a change during startup still wakes us
        self.watcher.arm()

        self.generation += 1
        self.stats["generations"] += 1
        self.mode = select_mode(self.path)
        self.logger.debug(f"Generation {self.generation}: loading {self.path} as {self.mode.value}")

        if self.mode is SourceMode.EXECUTABLE:
            delivery = self._deliver_from_process()
        else:
            delivery = self._deliver_from_file()

        self._delivery_task = asyncio.create_task(delivery, name=f"config-delivery:{self.generation}")

    async def _cancel_delivery(self) -> None:
        """Cancel the current generation's delivery task and wait for it to finish."""
        task = self._delivery_task
        if task is None:
            return

        task.cancel()
        # wait() leaves a cancellation of the reload loop itself propagating
        await asyncio.wait([task])
        self._delivery_task = None

        if not task.cancelled() and task.exception() is not None:
            self.logger.error(f"Generation {self.generation} delivery failed: {task.exception()!r}")

    async def _send(self, message: UpdateMessage) -> bool:
        """Send one message downstream; False once the downstream has shut the queue down."""
        try:
            await self.updates.put(message)
        except asyncio.QueueShutDown:
            self.stats["dropped_sends"] += 1
            self.logger.warning("Update queue was shut down, ending this generation")
            return False

        self.stats["messages_delivered"] += 1
        return True

    async def _deliver_from_file(self) -> None:
        message = await load_config(self.path)
        if message is None:
            self.stats["load_failures"] += 1
            return

        await self._send(message)

    async def _deliver_from_process(self) -> None:
        process = self.process_factory(self.path)
        try:
            try:
                await process.start()
            except OSError as e:
                self.stats["process_failures"] += 1
                self.logger.error(f"Failed to start config process {self.path}: {e}")
                return

            while True:
                try:
                    line = await process.read_line()
                except (OSError, ValueError) as e:
                    self.logger.error(f"Error while reading config process output: {e}")
                    break

                if line is None:
                    break

                try:
                    message = parse_update_message(line.decode("utf-8"))
                except (UnicodeDecodeError, ValidationError) as e:
                    self.stats["parse_errors"] += 1
                    self.logger.error(f"Error while parsing config response: {e}. Received value: {line!r}")
                    continue

                if not await self._send(message):
                    return

            self.stats["process_deaths"] += 1
            self.logger.error("Config process' stdout was closed (it died?). Showing last sent activity.")
        finally:
            await process.close()

    def _log_task_exit(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error(f"Config source for {self.path} stopped unexpectedly: {exc!r}")

    async def aclose(self) -> None:
        """Stop reloading and cancel the active generation."""
        if not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        self.watcher.stop()
        self.logger.info(f"Config source for {self.path} stopped after {self.generation} generation(s)")

    def get_status(self) -> dict[str, Any]:
        """Get current source status and statistics."""
        return {
            "is_running": self.is_running,
            "path": str(self.path),
            "mode": self.mode.value if self.mode else None,
            "generation": self.generation,
            "uptime_seconds": time.time() - self.start_time,
            "delivering": self._delivery_task is not None and not self._delivery_task.done(),
            "config": {
                "debounce_delay": self.config.debounce_delay,
                "line_limit": self.config.line_limit,
            },
            "statistics": self.stats.copy(),
            "watcher": self.watcher.get_status(),
        }

    async def __aenter__(self) -> "ConfigSource":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.aclose()
