"""Marketplace listing monitoring against authorized minimum prices."""

__version__ = "0.1.0"
