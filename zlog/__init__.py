"""Structured JSON log events, console pretty-printing and non-blocking diode writers."""

__version__ = "0.1.0"