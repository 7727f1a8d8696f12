"""Incremental software release tracker."""

__version__ = "0.1.0"
