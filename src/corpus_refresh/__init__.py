"""Refresh a document corpus from a random-item API and serve it."""

__version__ = "0.1.0"
