from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from concurrent.futures import Executor, Future
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from botocore.exceptions import BotoCoreError, ClientError

from .aws_errors import map_store_error
from .errors import KeyGenerationError

if TYPE_CHECKING:
    from .model import Record, RecordType
    from .outcome import RequestOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordKey:
    hash_name: str
    hash_value: Any
    range_name: str | None = None
    range_value: Any = None

    def is_complete(self) -> bool:
        if self.hash_value is None:
            return False
        if self.range_name is not None and self.range_value is None:
            return False
        return True

    def as_dict(self) -> dict[str, Any]:
        out = {self.hash_name: self.hash_value}
        if self.range_name is not None:
            out[self.range_name] = self.range_value
        return out


@dataclass(frozen=True)
class Immediate:
    value: Any


@dataclass(frozen=True)
class Pending:
    future: Future[Any]


type KeyResult = Immediate | Pending


class KeyGenerator(Protocol):
    """Produces identity for a record that has none.

    Record types with a range attribute must yield a mapping holding both key
    attributes; otherwise the bare hash value (or a one-entry mapping) is enough.
    """

    def new_key(self, record: Record, options: RequestOptions) -> KeyResult: ...


class NoKeyGenerator:
    def new_key(self, record: Record, options: RequestOptions) -> KeyResult:
        return Immediate(None)


class UuidKeyGenerator:
    def new_key(self, record: Record, options: RequestOptions) -> KeyResult:
        return Immediate(str(uuid.uuid4()))


class CounterKeyGenerator:
    """Auto-incremented hash keys backed by a counters table.

    Each call adds ``increment`` to the counter item named after the record's table
    (or ``counter_name``) and uses the new value as the key. With an executor the
    increment runs there and the key resolves later.

    That executor must not be the one a ``Dispatcher`` submits operations to: a save
    running on it would wait for an increment queued behind itself.
    """

    def __init__(
        self,
        client: Any,
        *,
        counters_table: str = "AtomicCounters",
        key_attribute: str = "id",
        value_attribute: str = "lastValue",
        counter_name: str | None = None,
        increment: int = 1,
        executor: Executor | None = None,
    ) -> None:
        if increment <= 0:
            raise ValueError("increment must be > 0")
        self._client = client
        self._counters_table = counters_table
        self._key_attribute = key_attribute
        self._value_attribute = value_attribute
        self._counter_name = counter_name
        self._increment = increment
        self._executor = executor

    @property
    def executor(self) -> Executor | None:
        return self._executor

    def increment(self, counter_name: str) -> int:
        try:
            resp = self._client.update_item(
                TableName=self._counters_table,
                Key={self._key_attribute: {"S": counter_name}},
                UpdateExpression="ADD #v :inc",
                ExpressionAttributeNames={"#v": self._value_attribute},
                ExpressionAttributeValues={":inc": {"N": str(self._increment)}},
                ReturnValues="UPDATED_NEW",
            )
        except (ClientError, BotoCoreError) as err:
            raise map_store_error(err) from err

        raw = resp.get("Attributes", {}).get(self._value_attribute, {}).get("N")
        if raw is None:
            raise KeyGenerationError(f"counter update did not return {self._value_attribute}")
        logger.debug("counter %s/%s advanced to %s", self._counters_table, counter_name, raw)
        return int(raw)

    def new_key(self, record: Record, options: RequestOptions) -> KeyResult:
        name = self._counter_name or record.record_type.resolve_table_name()
        if self._executor is not None:
            return Pending(self._executor.submit(self.increment, name))
        return Immediate(self.increment(name))


def current_key(record: Record) -> RecordKey:
    record_type = record.record_type
    range_name = record_type.range_attribute
    return RecordKey(
        hash_name=record_type.hash_attribute,
        hash_value=record.get(record_type.hash_attribute),
        range_name=range_name,
        range_value=record.get(range_name) if range_name is not None else None,
    )


def is_identified(record: Record) -> bool:
    return current_key(record).is_complete()


def normalize_generated_key(record_type: RecordType, value: Any) -> dict[str, Any]:
    hash_name = record_type.hash_attribute
    range_name = record_type.range_attribute

    if isinstance(value, RecordKey):
        value = value.as_dict()

    if range_name is not None:
        if not isinstance(value, Mapping) or value.get(hash_name) is None or value.get(range_name) is None:
            raise KeyGenerationError(f"key generator must return both {hash_name!r} and {range_name!r}")
        return {hash_name: value[hash_name], range_name: value[range_name]}

    if isinstance(value, Mapping):
        if value.get(hash_name) is None:
            raise KeyGenerationError(f"key generator did not return {hash_name!r}")
        return {hash_name: value[hash_name]}

    if value is None:
        raise KeyGenerationError("key generator produced no key")
    return {hash_name: value}
