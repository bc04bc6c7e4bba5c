"""Wiggle - catalog synchronization and download triage for a torrent listing site."""

__version__ = "0.1.0"
