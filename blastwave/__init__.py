"""Blast-wave generator configuration, option parsing and progress reporting."""

__version__ = "0.1.0"