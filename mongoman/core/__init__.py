"""
Core components: the lifecycle-scoped MongoDB connection handle.
"""

from .connection import ConnectionManager

__all__ = ["ConnectionManager"]
