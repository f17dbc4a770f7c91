from __future__ import annotations

import logging
import os
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime

import boto3

from dynasync import Collection, Dispatcher, RecordType, RequestOptions, UuidKeyGenerator


def _client():
    return boto3.client(
        "dynamodb",
        endpoint_url=os.environ.get("DYNAMODB_ENDPOINT", "http://localhost:8000"),
        region_name=os.environ.get("AWS_REGION", "us-east-1"),
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID", "dummy"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY", "dummy"),
    )


def main() -> None:
    logging.basicConfig(level=logging.DEBUG if os.environ.get("DEBUG") else logging.INFO)

    client = _client()
    table_name = f"dynasync_books_{uuid.uuid4().hex[:12]}"

    client.create_table(
        TableName=table_name,
        KeySchema=[{"AttributeName": "isbn", "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": "isbn", "AttributeType": "S"}],
        BillingMode="PAY_PER_REQUEST",
    )
    client.get_waiter("table_exists").wait(TableName=table_name)

    try:
        book = RecordType(hash_attribute="isbn", table_name=table_name, key_generator=UuidKeyGenerator())
        dispatcher = Dispatcher(client)

        lightning = book.new(
            name="The Lightning Thief",
            price=12.50,
            pages_i=384,
            cat=["book", "hardcover"],
            inStock=True,
            published=datetime(2005, 7, 1, tzinfo=UTC),
        )
        outcome = dispatcher.save(
            lightning,
            RequestOptions(
                success=lambda o, opts: print("saved with key:", o.attributes),
                error=lambda o, opts: print("save failed:", o.error),
            ),
        )
        outcome.unwrap()

        again = book.new(isbn=lightning.id)
        print("get:", dispatcher.fetch(again, RequestOptions(dynamodb={"ConsistentRead": True})).unwrap())

        shelf = Collection(book)
        with ThreadPoolExecutor(max_workers=2) as executor:
            future = Dispatcher(client, executor=executor).submit("read", shelf)
            future.result().unwrap()
        print("scan:", [b.get("name") for b in shelf])
        print("scan cheap books:", dispatcher.scan_where(shelf, {"price <": 20}).unwrap())

        dispatcher.destroy(again).unwrap()
    finally:
        client.delete_table(TableName=table_name)


if __name__ == "__main__":
    main()
