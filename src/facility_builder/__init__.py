"""Spatial editing core for storage facility layouts."""

__version__ = "0.1.0"
