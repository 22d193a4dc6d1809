"""
Unit tests for the CSV codec.
"""

import pytest

from mongoman.codecs.tabular import (collect_columns, from_csv, split_csv_line,
                                     to_csv)


@pytest.mark.unit
class TestToCsv:
    """Test to_csv."""

    def test_union_of_columns_and_blank_cells(self):
        assert to_csv([{"a": 1, "b": "x"}, {"a": 2}]) == '"a","b"\n"1","x"\n"2",""'

    def test_no_documents(self):
        assert to_csv([]) == ""

    def test_columns_in_first_seen_order(self):
        assert collect_columns([{"b": 1}, {"a": 1, "b": 2}, {"c": 3}]) == ["b", "a", "c"]

    def test_quotes_are_doubled(self):
        assert to_csv([{"q": 'say "hi"'}]) == '"q"\n"say ""hi"""'

    def test_nested_values_are_json(self):
        csv_text = to_csv([{"tags": ["a", "b"], "meta": {"k": 1}}])
        assert csv_text.splitlines()[1] == '"[""a"",""b""]","{""k"":1}"'

    def test_null_and_booleans(self):
        assert to_csv([{"a": None, "b": True, "c": False}]).splitlines()[1] == '"","true","false"'


@pytest.mark.unit
class TestFromCsv:
    """Test from_csv and split_csv_line."""

    def test_split_handles_quotes_and_commas(self):
        assert split_csv_line('"a,b","c ""d""", e ') == ["a,b", 'c "d"', "e"]

    def test_header_only(self):
        assert from_csv('"a","b"') == []

    def test_blank_lines_are_skipped(self):
        assert from_csv('a,b\n\n1,2\n') == [{"a": 1, "b": 2}]

    def test_cells_are_scalar_coerced(self):
        assert from_csv("a,b,c,d\ntrue,null,3.5,hello") == [
            {"a": True, "b": None, "c": 3.5, "d": "hello"}
        ]

    def test_missing_trailing_cells_are_null(self):
        assert from_csv("a,b\n1") == [{"a": 1, "b": None}]

    def test_arrays_are_not_reconstructed(self):
        assert from_csv('tags\n"[1,2]"') == [{"tags": "[1,2]"}]

    def test_scalar_round_trip(self):
        documents = [
            {"name": "Ada", "age": 36, "active": True},
            {"name": "Grace, Admiral", "age": 45.5, "active": False},
        ]
        assert from_csv(to_csv(documents)) == documents

    def test_round_trip_numeric_looking_string_becomes_number(self):
        assert from_csv(to_csv([{"zip": "02134"}])) == [{"zip": 2134}]
