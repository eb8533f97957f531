#!/usr/bin/env python3
"""
Rich presence config source runner

Watches a config path and prints every update message it produces as one JSON
line on stdout. The config may be a JSON document or an executable that prints
one JSON message per line; it is reloaded whenever it changes.
"""

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

from presence.models.update_message import UpdateMessage
from presence.services.config_source import ConfigSource, SourceConfig
from presence.utils.utils import build_source_config, get_environment_config, print_startup_info

logger = logging.getLogger(__name__)


async def print_updates(updates: asyncio.Queue[UpdateMessage], echo: bool = True) -> None:
    """Consume update messages, printing each one as a JSON line."""
    while True:
        message = await updates.get()
        if echo:
            print(message.model_dump_json(), flush=True)
        else:
            logger.info(f"Received update: {message.model_dump_json()}")
        updates.task_done()


async def serve(config: SourceConfig, queue_size: int = 0, echo: bool = True) -> None:
    """Run a config source until cancelled."""
    updates: asyncio.Queue[UpdateMessage] = asyncio.Queue(maxsize=queue_size)

    async with ConfigSource(config, updates):
        try:
            await print_updates(updates, echo=echo)
        finally:
            updates.shutdown(immediate=True)


def main() -> None:
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Stream rich presence updates from a config file or executable",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  presence-source ~/.config/linux-discord-rich-presence/config
  presence-source ./status.sh --debounce 0.5

Settings can also come from the environment or a .env file (PRESENCE_CONFIG, WATCH_DEBOUNCE_DELAY, ...)
        """,
    )
    parser.add_argument("path", nargs="?", help="Config path (defaults to PRESENCE_CONFIG)")
    parser.add_argument("--debounce", type=float, help="Seconds to coalesce bursts of changes")

    args = parser.parse_args()

    # Load environment variables from .env file
    load_dotenv()

    log_level = os.getenv("LOG_LEVEL", "info").upper()
    logging.basicConfig(level=logging.getLevelNamesMapping().get(log_level, logging.INFO), stream=sys.stderr)

    try:
        env_config = get_environment_config()
        config = build_source_config(args.path, args.debounce)
        print_startup_info(config, env_config)

        asyncio.run(serve(config, queue_size=env_config["update_queue_size"], echo=env_config["print_updates"]))
    except OSError as e:
        logger.error(f"❌ Cannot watch config: {e}")
        sys.exit(1)
    except ValueError as e:
        logger.error(f"❌ Invalid configuration: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("🛑 Stopping config source...")


if __name__ == "__main__":
    main()
