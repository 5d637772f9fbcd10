"""Command-line interface for threadline."""

from .app import app, main

__all__ = ["app", "main"]
