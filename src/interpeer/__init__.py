"""Interpeer - route second-opinion reviews to peer coding agents."""

__version__ = "0.3.0"
