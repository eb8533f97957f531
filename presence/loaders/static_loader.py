"""Loads a plain config file as a single update message."""

import asyncio
import logging
from pathlib import Path

from pydantic import ValidationError

from presence.models.update_message import UpdateMessage, parse_update_message

logger = logging.getLogger(__name__)


async def load_config(path: Path) -> UpdateMessage | None:
    """
    Read and parse a static config file.

    Failures are logged and reported as None; the caller does not retry.

    Args:
        path: Path to a JSON document

    Returns:
        The parsed update message, or None if the file could not be read or parsed
    """
    try:
        config = await asyncio.to_thread(path.read_text, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Error while reading config file {path}: {e}")
        return None

    try:
        return parse_update_message(config)
    except ValidationError as e:
        logger.error(f"Error while parsing config file {path}: {e}. Config: {config!r}")
        return None
