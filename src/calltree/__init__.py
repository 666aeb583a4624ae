"""Call-tree timing recorder."""

__version__ = "0.1.0"
