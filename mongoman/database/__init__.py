"""
Browsing and management of databases, collections, documents and indexes.
"""

from .browser import DatabaseBrowser, DocumentPage, parse_document_id
from .indexes import describe_index, describe_indexes, keys_to_dict, normalize_keys

__all__ = [
    "DatabaseBrowser",
    "DocumentPage",
    "parse_document_id",
    "describe_index",
    "describe_indexes",
    "keys_to_dict",
    "normalize_keys",
]
