"""Lifecycle management for time-limited signed object-storage URLs."""

__version__ = "0.1.0"
