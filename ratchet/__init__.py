"""Check that a metric only improves relative to a base git branch."""

__version__ = "0.1.0"