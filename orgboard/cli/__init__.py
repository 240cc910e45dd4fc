"""Command-line interface for Orgboard."""

from orgboard.cli.main import build_parser, main

__all__ = ["build_parser", "main"]
