"""Relay one notification to several messaging backends."""

__version__ = "0.1.0"
