"""Warehouse dashboard core: permissions, sessions and optimistic sync."""

__version__ = "1.0.0"
