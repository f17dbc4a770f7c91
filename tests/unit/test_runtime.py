from __future__ import annotations

import pytest

from dynasync.mocks import FakeDynamoDBClient
from dynasync.runtime import (
    AwsCallMetric,
    StoreSettings,
    create_boto3_config,
    create_store_client,
    instrument_boto3_client,
)


def test_settings_from_env_defaults() -> None:
    settings = StoreSettings.from_env({})
    assert settings == StoreSettings(region=None, endpoint_url=None)
    assert settings.connect_timeout == 1.0
    assert settings.read_timeout == 3.0
    assert settings.max_attempts == 3


def test_settings_from_env_reads_every_variable() -> None:
    settings = StoreSettings.from_env(
        {
            "DYNASYNC_REGION": "eu-west-1",
            "AWS_REGION": "us-east-1",
            "DYNASYNC_ENDPOINT_URL": " http://localhost:8000 ",
            "DYNASYNC_CONNECT_TIMEOUT": "2.5",
            "DYNASYNC_READ_TIMEOUT": "10",
            "DYNASYNC_MAX_ATTEMPTS": "5",
        }
    )
    assert settings == StoreSettings(
        region="eu-west-1",
        endpoint_url="http://localhost:8000",
        connect_timeout=2.5,
        read_timeout=10.0,
        max_attempts=5,
    )
    assert StoreSettings.from_env({"AWS_REGION": "us-east-1"}).region == "us-east-1"


@pytest.mark.parametrize(
    ("name", "raw", "message"),
    [
        ("DYNASYNC_CONNECT_TIMEOUT", "soon", "must be a number"),
        ("DYNASYNC_READ_TIMEOUT", "0", "must be > 0"),
        ("DYNASYNC_MAX_ATTEMPTS", "2.5", "must be an integer"),
        ("DYNASYNC_MAX_ATTEMPTS", "-1", "must be > 0"),
    ],
)
def test_settings_from_env_rejects_bad_values(name: str, raw: str, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        StoreSettings.from_env({name: raw})


def test_create_boto3_config() -> None:
    cfg = create_boto3_config(connect_timeout=2.0, read_timeout=4.0, max_attempts=3)
    assert cfg.connect_timeout == 2.0
    assert cfg.read_timeout == 4.0
    assert cfg.retries["max_attempts"] == 3
    assert cfg.retries["mode"] == "standard"


def test_instrument_boto3_client_records_calls() -> None:
    metrics: list[AwsCallMetric] = []

    client = FakeDynamoDBClient()
    client.expect("put_item", response={})
    wrapped = instrument_boto3_client(client, service="dynamodb", on_call=metrics.append)
    wrapped.put_item(TableName="t", Item={})
    assert len(metrics) == 1
    assert metrics[0].operation == "put_item"
    assert metrics[0].ok is True

    client2 = FakeDynamoDBClient()
    client2.expect("get_item", error=RuntimeError("boom"), response=None)
    wrapped2 = instrument_boto3_client(client2, service="dynamodb", on_call=metrics.append)
    with pytest.raises(RuntimeError, match="boom"):
        wrapped2.get_item(TableName="t", Key={})
    assert len(metrics) == 2
    assert metrics[1].ok is False

    assert wrapped2.calls == client2.calls


class FakeSession:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, object]]] = []

    def client(self, service_name: str, **kwargs: object) -> object:
        self.calls.append((service_name, kwargs))
        return FakeDynamoDBClient()


def test_create_store_client_applies_settings() -> None:
    sess = FakeSession()
    settings = StoreSettings(region="us-east-1", endpoint_url="http://localhost:8000", max_attempts=7)

    client = create_store_client(settings, session=sess)

    assert isinstance(client, FakeDynamoDBClient)
    ((service, kwargs),) = sess.calls
    assert service == "dynamodb"
    assert kwargs["region_name"] == "us-east-1"
    assert kwargs["endpoint_url"] == "http://localhost:8000"
    assert kwargs["config"].retries["max_attempts"] == 7  # type: ignore[attr-defined]


def test_create_store_client_without_endpoint_and_with_metrics() -> None:
    sess = FakeSession()
    metrics: list[AwsCallMetric] = []

    client = create_store_client(StoreSettings(region="us-east-1"), session=sess, metrics=metrics.append)

    ((_, kwargs),) = sess.calls
    assert "endpoint_url" not in kwargs
    assert not isinstance(client, FakeDynamoDBClient)
    client._client.expect("scan", response={"Items": []})
    client.scan(TableName="Books")
    assert [m.operation for m in metrics] == ["scan"]
