"""Protocol-independent logic for group chat games and utilities."""

__version__ = "0.1.0"