from __future__ import annotations

from datetime import UTC, datetime

import pytest

from dynasync import Collection, ModelDefinitionError, Record, RecordType, derive_table_name


def test_derive_table_name_capitalizes_the_last_url_segment() -> None:
    assert derive_table_name("/books") == "Books"
    assert derive_table_name("/api/v1/events/") == "Events"
    assert derive_table_name("contacts") == "Contacts"
    assert derive_table_name("/myEvents") == "MyEvents"

    with pytest.raises(ModelDefinitionError):
        derive_table_name("/")


def test_record_type_table_name_resolution() -> None:
    assert RecordType(table_name="Library", url_root="/books").resolve_table_name() == "Library"
    assert RecordType(url_root="/books").resolve_table_name() == "Books"
    with pytest.raises(ModelDefinitionError, match="table_name"):
        RecordType().resolve_table_name()


def test_record_type_validation() -> None:
    with pytest.raises(ModelDefinitionError, match="hash_attribute"):
        RecordType(hash_attribute="")
    with pytest.raises(ModelDefinitionError, match="differ"):
        RecordType(hash_attribute="id", range_attribute="id")

    assert RecordType(hash_attribute="isbn").key_attributes == ("isbn",)
    ranged = RecordType(hash_attribute="calendarId", range_attribute="date")
    assert ranged.key_attributes == ("calendarId", "date")


def test_record_attribute_helpers() -> None:
    book_type = RecordType(hash_attribute="isbn", url_root="/books")
    book = book_type.new({"isbn": 1, "name": "n"}, price=12.5)

    assert book.id == 1
    assert book.get("price") == 12.5
    assert book.get("missing", "dflt") == "dflt"
    assert book.has("name") is True
    assert book.has("missing") is False

    book.set("pages_i", 384)
    book.update({"price": 10})
    assert book.attributes == {"isbn": 1, "name": "n", "price": 10, "pages_i": 384}

    assert book.pick("isbn", "name") == {"isbn": 1, "name": "n"}
    assert book.omit("price", "pages_i") == {"isbn": 1, "name": "n"}
    assert book.to_json(include=["name"]) == {"name": "n"}
    assert book.to_json(exclude=["name"]) == {"isbn": 1, "price": 10, "pages_i": 384}
    assert book.to_json(include=["name"], exclude=["name"]) == {"isbn": 1, "price": 10, "pages_i": 384}
    assert book.to_json() == book.attributes
    assert book.to_json() is not book.attributes

    assert book == Record(book_type, dict(book.attributes))
    assert book != Record(book_type, {"isbn": 2})


def test_record_json_value_serializes_dates() -> None:
    rt = RecordType(table_name="Events")
    rec = rt.new(id=1, at=datetime(2024, 5, 1, tzinfo=UTC))
    assert rec.to_json_value() == {"id": 1, "at": "2024-05-01T00:00:00.000Z"}


def test_collection_holds_records_and_resolves_its_table() -> None:
    book_type = RecordType(hash_attribute="isbn", url_root="/books")

    coll = Collection(book_type, [{"isbn": 1}, book_type.new(isbn=2)])
    assert len(coll) == 2
    assert [r.id for r in coll] == [1, 2]
    assert isinstance(coll[0], Record)
    assert coll.resolve_table_name() == "Books"

    added = coll.add({"isbn": 3})
    assert added.record_type is book_type
    assert len(coll) == 3

    coll.reset([{"isbn": 9}])
    assert [r.attributes for r in coll] == [{"isbn": 9}]
    assert coll.to_json_value() == [{"isbn": 9}]

    assert Collection(book_type, url="/library/shelves").resolve_table_name() == "Shelves"
    assert Collection(book_type, table_name="Archive", url="/shelves").resolve_table_name() == "Archive"
