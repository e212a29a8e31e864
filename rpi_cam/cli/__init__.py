"""Command-line interface for rpi-cam."""

from .main import main

__all__ = ["main"]
