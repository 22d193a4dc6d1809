"""
HTTP routing for the console.
"""

from .api import AggregateRequest, QueryRequest, create_app, router

__all__ = ["router", "create_app", "QueryRequest", "AggregateRequest"]
