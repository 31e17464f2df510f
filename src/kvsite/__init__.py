"""Publish a directory tree into a key-value store and serve it back from the edge."""

__version__ = "0.1.0"
