"""reqman - personal API request manager."""

__version__ = "0.3.0"
