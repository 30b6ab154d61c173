"""
Eminent Notes - a personal note-taking core.
Notes live in a folder hierarchy, carry tags, can be pinned or archived,
and are edited through buffered editing sessions. State is persisted in a
local SQLite database and published to subscribers as immutable snapshots.

This version uses synchronous operations.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("eminent-notes")
except PackageNotFoundError:
    __version__ = "0.3.0"
