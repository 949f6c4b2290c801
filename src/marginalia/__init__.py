"""Marginalia — capture, search, and synthesize snippets from physical books."""

__version__ = "0.1.0"
