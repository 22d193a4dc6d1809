"""
Unit tests for the Extended JSON document codec.
"""

import uuid
from datetime import datetime, timezone

import pytest
from bson import Binary, Int64, ObjectId

from mongoman.codecs.ejson import (deserialize_document, dumps,
                                   get_json_options, loads,
                                   serialize_document)


@pytest.fixture
def typed_document():
    return {
        "_id": ObjectId("507f1f77bcf86cd799439011"),
        "created": datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc),
        "ref": uuid.UUID("12345678-1234-5678-1234-567812345678"),
        "big": Int64(9007199254740993),
        "blob": Binary(b"\x00\x01"),
        "nested": {"when": datetime(2020, 1, 1, tzinfo=timezone.utc)},
    }


@pytest.mark.unit
class TestEjsonCodec:
    """Test type-preserving serialisation."""

    def test_object_id_is_tagged(self):
        doc = serialize_document({"_id": ObjectId("507f1f77bcf86cd799439011")})
        assert doc == {"_id": {"$oid": "507f1f77bcf86cd799439011"}}

    def test_date_is_tagged(self, typed_document):
        assert "$date" in serialize_document(typed_document)["created"]

    @pytest.mark.parametrize("mode", ["relaxed", "canonical"])
    def test_round_trip(self, typed_document, mode):
        restored = deserialize_document(serialize_document(typed_document, mode), mode)
        assert restored["_id"] == typed_document["_id"]
        assert restored["created"] == typed_document["created"]
        assert restored["ref"] == typed_document["ref"]
        assert restored["big"] == typed_document["big"]
        assert bytes(restored["blob"]) == bytes(typed_document["blob"])
        assert restored["nested"] == typed_document["nested"]

    def test_canonical_keeps_int64_tag(self):
        doc = serialize_document({"n": Int64(5)}, "canonical")
        assert doc == {"n": {"$numberLong": "5"}}
        assert isinstance(deserialize_document(doc, "canonical")["n"], Int64)

    def test_text_round_trip(self, typed_document):
        assert loads(dumps(typed_document))["_id"] == typed_document["_id"]

    def test_unknown_mode(self):
        with pytest.raises(ValueError, match="Unknown extended JSON mode"):
            get_json_options("legacy")
