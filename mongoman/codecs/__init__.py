"""
Codecs for moving documents across plain-text transports.
"""

from .ejson import (
    deserialize_document,
    deserialize_documents,
    get_json_options,
    serialize_document,
    serialize_documents,
)
from .tabular import from_csv, split_csv_line, to_csv

__all__ = [
    "to_csv",
    "from_csv",
    "split_csv_line",
    "get_json_options",
    "serialize_document",
    "serialize_documents",
    "deserialize_document",
    "deserialize_documents",
]
