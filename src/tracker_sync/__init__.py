"""Synchronize upstream multiplayer session trackers into a local store."""

__version__ = "0.1.0"
