"""
Tabular (CSV) codec for collection export and import.

Export writes one column per key seen across all documents, in first-seen
order, and quotes every cell. Nested values are flattened to their JSON
text, so they come back as strings on import.

Import splits each line with a quote-aware splitter that understands
doubled quotes and commas inside quotes. Quoted fields spanning several
lines are not supported.
"""

import csv
import io
import json
from typing import Any

from ..query.values import parse_scalar


def _format_cell(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def collect_columns(documents: list[dict[str, Any]]) -> list[str]:
    """Union of keys across documents, in first-seen order."""
    columns: dict[str, None] = {}
    for doc in documents:
        for key in doc:
            columns.setdefault(key, None)
    return list(columns)


def to_csv(documents: list[dict[str, Any]]) -> str:
    """
    Render documents as CSV text.

    Args:
        documents: JSON-compatible documents (already Extended JSON serialised)

    Returns:
        CSV text with a header row, or "" when there are no documents
    """
    if not documents:
        return ""

    columns = collect_columns(documents)
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(columns)
    for doc in documents:
        writer.writerow([_format_cell(doc.get(column)) for column in columns])
    return buffer.getvalue().rstrip("\n")


def split_csv_line(line: str) -> list[str]:
    """
    Split one CSV line into trimmed fields.

    Quotes toggle a quoted section; a doubled quote inside a quoted section
    is a literal quote.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0

    while i < len(line):
        char = line[i]
        if in_quotes:
            if char == '"' and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            elif char == '"':
                in_quotes = False
            else:
                current.append(char)
        elif char == '"':
            in_quotes = True
        elif char == ",":
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current).strip())
    return fields


def from_csv(text: str) -> list[dict[str, Any]]:
    """
    Parse CSV text into documents.

    The first non-blank line is the header. Every cell is coerced to a
    scalar (boolean, null, number or string); missing trailing cells are null.
    """
    lines = [line for line in text.split("\n") if line.strip()]
    if len(lines) < 2:
        return []

    headers = split_csv_line(lines[0])
    documents = []
    for line in lines[1:]:
        values = split_csv_line(line)
        documents.append(
            {
                header: parse_scalar(values[i] if i < len(values) else "")
                for i, header in enumerate(headers)
            }
        )
    return documents
