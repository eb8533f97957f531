"""
File watching utilities for the rich presence config source.

This module provides the change notifications that trigger a reload of the
config path.
"""

from presence.watchers.change_watcher import ChangeWatcher, DebounceHandler

__all__ = ["ChangeWatcher", "DebounceHandler"]
