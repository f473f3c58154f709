"""Real-time session fraud scoring proxy."""

__version__ = "0.1.0"
