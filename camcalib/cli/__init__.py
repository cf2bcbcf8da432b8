"""Command-line interface."""

from camcalib.cli.arguments import parse_arguments

__all__ = ["parse_arguments"]
