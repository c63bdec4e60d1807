"""Streaming materialization of generated blocks into a live, user-editable document."""

__version__ = "0.1.0"
