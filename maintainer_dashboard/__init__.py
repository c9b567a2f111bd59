"""Data pipeline behind the maintainer attention dashboard."""

__version__ = "0.1.0"
