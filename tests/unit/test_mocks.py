from __future__ import annotations

from datetime import UTC, datetime

import pytest

from dynasync import Collection, Dispatcher, RecordType
from dynasync.mocks import ANY, FakeDynamoDBClient, request_differences

Note = RecordType(hash_attribute="pk", range_attribute="sk", table_name="notes")


def test_records_calls_and_decodes_what_was_written() -> None:
    client = FakeDynamoDBClient()
    client.expect("put_item", {"TableName": "notes", "Item": ANY})
    client.expect("delete_item", response={})
    dispatcher = Dispatcher(client)
    when = datetime(2024, 5, 1, tzinfo=UTC)

    dispatcher.save(Note.new(pk="A", sk="B", value=1, at=when))
    dispatcher.destroy(Note.new(pk="A", sk="B"))

    client.assert_no_pending()
    assert [name for name, _ in client.calls] == ["put_item", "delete_item"]
    assert client.written("put_item") == [{"pk": "A", "sk": "B", "value": 1, "at": when}]
    assert client.written("delete_item", "Key") == [{"pk": "A", "sk": "B"}]


def test_scripts_answers_from_native_attributes() -> None:
    client = FakeDynamoDBClient()
    client.expect("get_item", item={"pk": "A", "sk": "B", "tags": ["x", "y"]})
    page = [{"pk": "A", "sk": "1"}, {"pk": "A", "sk": "2"}]
    client.expect("scan", items=page, response={"ScannedCount": 9})
    dispatcher = Dispatcher(client)

    note = Note.new(pk="A", sk="B")
    assert dispatcher.fetch(note).ok
    assert note.get("tags") == ["x", "y"]

    notes = Collection(Note)
    outcome = dispatcher.fetch_collection(notes)
    assert outcome.raw_response == {
        "Items": [{"pk": {"S": "A"}, "sk": {"S": "1"}}, {"pk": {"S": "A"}, "sk": {"S": "2"}}],
        "Count": 2,
        "ScannedCount": 9,
    }
    assert [n.get("sk") for n in notes] == ["1", "2"]


def test_validator_callables_see_the_raw_request() -> None:
    seen: list[dict] = []
    client = FakeDynamoDBClient()
    client.expect("get_item", seen.append, item={"pk": "A", "sk": "B"})

    assert Dispatcher(client).fetch(Note.new(pk="A", sk="B")).ok
    assert seen[0]["Key"] == {"pk": {"S": "A"}, "sk": {"S": "B"}}


def test_request_differences_reports_every_mismatch() -> None:
    expected = {"TableName": "notes", "Item": {"pk": {"S": "A"}, "sk": ANY}, "Key": ["pk"]}
    actual = {"TableName": "other", "Item": {"pk": {"S": "Z"}, "sk": {"S": "anything"}}, "Key": {}}

    assert request_differences(expected, actual, "put_item") == [
        "put_item.TableName: expected 'notes', got 'other'",
        "put_item.Item.pk.S: expected 'A', got 'Z'",
        "put_item.Key: expected list, got dict",
    ]
    assert request_differences({"Limit": 1}, {}, "scan") == ["scan: missing key 'Limit'"]
    assert request_differences([ANY, 2], [1, 2], "x") == []
    assert request_differences([1], [1, 2], "x") == ["x: expected 1 items, got 2"]


def test_reports_unexpected_and_out_of_order_calls() -> None:
    client = FakeDynamoDBClient()
    with pytest.raises(AssertionError, match="unexpected call: scan"):
        client.scan(TableName="notes")

    client.expect("query")
    with pytest.raises(AssertionError, match="expected query, got scan"):
        client.scan(TableName="notes")

    client.expect("put_item", {"Item": {"pk": {"S": "A"}}})
    with pytest.raises(AssertionError, match=r"put_item\.Item\.pk\.S"):
        client.put_item(TableName="notes", Item={"pk": {"S": "Z"}})

    client.expect("scan")
    with pytest.raises(AssertionError, match=r"pending expected calls: \['scan'\]"):
        client.assert_no_pending()


def test_only_table_operations_exist() -> None:
    client = FakeDynamoDBClient()
    with pytest.raises(ValueError, match="unsupported operation"):
        client.expect("batch_get_item")
    with pytest.raises(AttributeError):
        client.batch_get_item(RequestItems={})
