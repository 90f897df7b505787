"""qMint command line interfaces."""

from .collection import cli

__all__ = ["cli"]
