"""Selects how a config path is turned into update messages."""

import logging
import stat
from enum import Enum
from pathlib import Path

logger = logging.getLogger(__name__)

EXECUTE_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


class SourceMode(Enum):
    """How a config path produces updates."""

    # Run as a subprocess, one JSON message per stdout line
    EXECUTABLE = "executable"
    # Parse once as a single JSON document
    PLAIN_FILE = "plain_file"


def select_mode(path: Path) -> SourceMode:
    """
    Pick the source mode for a path from its current permission bits.

    A regular file with any execute bit set is run as a process. Everything
    else, including a path whose permissions cannot be read, is loaded as a
    plain file.

    Args:
        path: The config path

    Returns:
        The selected mode
    """
    try:
        st_mode = path.stat().st_mode
    except OSError as e:
        logger.debug(f"Could not check permissions of {path}, loading it as a plain file: {e}")
        return SourceMode.PLAIN_FILE

    if stat.S_ISREG(st_mode) and st_mode & EXECUTE_BITS:
        return SourceMode.EXECUTABLE
    return SourceMode.PLAIN_FILE
