"""Leap governance ballot scanner."""

__version__ = "0.1.0"
