"""diffchain — a version-control backend that stores file history as diff chains."""

__version__ = "0.1.0"
