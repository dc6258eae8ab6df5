"""Tests for type descriptors, field checks and schema verification."""

from datetime import date, datetime

import pytest

from embedded_json_db import (
    ArrayOf,
    IOCorruptionError,
    MissingTypeError,
    Reference,
    ReferenceArray,
    Scalar,
    Schema,
    UnknownEntryError,
    UnknownTableError,
    UnsupportedTypeError,
    check_field,
    new_id,
    parse_type,
)
from embedded_json_db.utils import parse_iso


class TestParseType:
    def test_valid(self):
        names = ["people"]
        assert parse_type("number", names) == Scalar("number")
        assert parse_type("array date", names) == ArrayOf("date")
        assert parse_type("id people", names) == Reference("people")
        assert parse_type("array id people", names) == ReferenceArray("people")

    def test_round_trip_to_string(self):
        for s in ("string", "array number", "id t", "array id t"):
            assert str(parse_type(s)) == s

    @pytest.mark.parametrize("bad", ["float", "array float", "list number", "array id", "a b c d", "id a b"])
    def test_unsupported(self, bad):
        with pytest.raises(UnsupportedTypeError):
            parse_type(bad, ["a"])

    def test_missing_and_non_string(self):
        with pytest.raises(MissingTypeError):
            parse_type(None)
        with pytest.raises(MissingTypeError):
            parse_type("  ")
        with pytest.raises(UnsupportedTypeError):
            parse_type(["number"])
        with pytest.raises(UnsupportedTypeError):
            parse_type(5)

    def test_unknown_table(self):
        with pytest.raises(UnknownTableError):
            parse_type("id nope", ["people"])
        with pytest.raises(UnknownTableError):
            parse_type("array id nope", ["people"])
        # Trusted parse skips the table check
        assert parse_type("id nope") == Reference("nope")


class TestCheckField:
    def test_scalars(self):
        assert check_field(Scalar("number"), 1, {})
        assert check_field(Scalar("number"), 1.5, {})
        assert not check_field(Scalar("number"), True, {})
        assert not check_field(Scalar("number"), float("inf"), {})
        assert not check_field(Scalar("number"), "1", {})
        assert check_field(Scalar("string"), "", {})
        assert not check_field(Scalar("string"), None, {})
        assert check_field(Scalar("date"), date(2020, 1, 1), {})
        assert check_field(Scalar("date"), datetime(2020, 1, 1, 10), {})
        assert not check_field(Scalar("date"), "2020-01-01", {})

    def test_arrays(self):
        desc = ArrayOf("number")
        assert check_field(desc, [], {})
        assert check_field(desc, None, {})
        assert check_field(desc, [1, 2.5], {})
        assert not check_field(desc, [1, "2"], {})
        assert not check_field(desc, 1, {})

    def test_references(self):
        tables = {"people": {"a": {"_id": "a"}}}
        assert check_field(Reference("people"), "a", tables)
        assert check_field(Reference("people"), None, tables)
        assert check_field(Reference("people"), "", tables)
        assert not check_field(Reference("people"), 5, tables)
        with pytest.raises(UnknownEntryError):
            check_field(Reference("people"), "b", tables)
        with pytest.raises(UnknownTableError):
            check_field(Reference("pets"), "a", tables)

    def test_reference_arrays(self):
        tables = {"people": {"a": {}, "b": {}}}
        assert check_field(ReferenceArray("people"), ["a", "b"], tables)
        assert check_field(ReferenceArray("people"), [], tables)
        assert check_field(ReferenceArray("people"), None, tables)
        assert not check_field(ReferenceArray("people"), "a", tables)
        with pytest.raises(UnknownEntryError):
            check_field(ReferenceArray("people"), ["a", "c"], tables)
        with pytest.raises(UnknownTableError):
            check_field(ReferenceArray("pets"), [], tables)


class TestSchema:
    def test_verify(self):
        schema = Schema.verify({
            "people": {"name": {"type": "string", "required": True}, "friends": "array id people"},
            "pets": {"owner": {"type": "id people"}},
        })
        assert schema.table_names == ["people", "pets"]
        assert schema.required_fields("people") == ["name"]
        assert schema.field("pets", "owner").descriptor == Reference("people")
        assert schema.to_json()["people"]["friends"] == {"type": "array id people", "required": False}

    def test_verify_rejects_whole_schema(self):
        with pytest.raises(UnknownTableError):
            Schema.verify({"people": {"name": "string", "pet": "id pets"}})
        with pytest.raises(UnsupportedTypeError):
            Schema.verify({"people": ["name"]})
        with pytest.raises(UnsupportedTypeError):
            Schema.verify(["people"])
        with pytest.raises(MissingTypeError):
            Schema.verify({"people": {"name": {"required": True}}})

    def test_from_json_bad_type(self):
        with pytest.raises(IOCorruptionError):
            Schema.from_json({"people": {"name": {"type": "float"}}})

    def test_date_fields(self):
        schema = Schema.verify({"t": {"a": "date", "b": "array date", "c": "string"}})
        assert [f.name for f in schema.date_fields("t")] == ["a", "b"]


def test_new_id_shape():
    ids = {new_id() for _ in range(100)}
    assert len(ids) == 100
    for rid in ids:
        parts = rid.split("-")
        assert [len(p) for p in parts] == [8, 4, 4, 4, 12]
        assert rid == rid.lower()
        assert parts[2][0] == "4"
        assert parts[3][0] in "89ab"


def test_parse_iso():
    assert parse_iso("2020-02-03") == date(2020, 2, 3)
    assert parse_iso("2020-02-03T04:05:06") == datetime(2020, 2, 3, 4, 5, 6)
    assert parse_iso("not a date") == "not a date"
    assert parse_iso(5) == 5
