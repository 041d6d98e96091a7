"""Moovey moving-journey progress and task client."""

__version__ = "0.1.0"
