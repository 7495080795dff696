"""Thunderstore mod cache and sync engine for RUMBLE."""

__version__ = "0.1.0"
