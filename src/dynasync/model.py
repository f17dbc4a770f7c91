from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .codec import AttributeCodec
from .conditions import build_condition
from .dates import DatePolicy, IsoDatePolicy, serialize_dates
from .keys import KeyGenerator, NoKeyGenerator, RecordKey, current_key, is_identified


class ModelDefinitionError(ValueError):
    pass


def derive_table_name(url: str) -> str:
    segment = url.strip().rstrip("/").rsplit("/", 1)[-1]
    if not segment:
        raise ModelDefinitionError(f"cannot derive a table name from url: {url!r}")
    return segment[0].upper() + segment[1:]


@dataclass(frozen=True)
class RecordType:
    hash_attribute: str = "id"
    range_attribute: str | None = None
    table_name: str | None = None
    url_root: str | None = None
    date_policy: DatePolicy = field(default_factory=IsoDatePolicy)
    key_generator: KeyGenerator = field(default_factory=NoKeyGenerator)
    _codec: AttributeCodec = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.hash_attribute:
            raise ModelDefinitionError("hash_attribute is required")
        if self.range_attribute is not None and self.range_attribute == self.hash_attribute:
            raise ModelDefinitionError("range_attribute must differ from hash_attribute")
        object.__setattr__(self, "_codec", AttributeCodec(self.date_policy))

    @property
    def codec(self) -> AttributeCodec:
        return self._codec

    @property
    def key_attributes(self) -> tuple[str, ...]:
        if self.range_attribute is None:
            return (self.hash_attribute,)
        return (self.hash_attribute, self.range_attribute)

    def resolve_table_name(self) -> str:
        if self.table_name:
            return self.table_name
        if self.url_root:
            return derive_table_name(self.url_root)
        raise ModelDefinitionError("table_name is required (or set url_root)")

    def new(self, attributes: Mapping[str, Any] | None = None, /, **kwargs: Any) -> Record:
        merged = dict(attributes or {})
        merged.update(kwargs)
        return Record(self, merged)

    def condition(self, name: str, operator: str, *operands: Any) -> dict[str, Any]:
        return build_condition(self._codec, name, operator, *operands)


class Record:
    def __init__(self, record_type: RecordType, attributes: Mapping[str, Any] | None = None) -> None:
        self.record_type = record_type
        self.attributes: dict[str, Any] = dict(attributes or {})

    def __repr__(self) -> str:
        return f"Record({self.attributes!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self.record_type == other.record_type and self.attributes == other.attributes

    __hash__ = None  # type: ignore[assignment]

    @property
    def id(self) -> Any:
        return self.attributes.get(self.record_type.hash_attribute)

    @property
    def key(self) -> RecordKey:
        return current_key(self)

    @property
    def is_identified(self) -> bool:
        return is_identified(self)

    def get(self, name: str, default: Any = None) -> Any:
        return self.attributes.get(name, default)

    def has(self, name: str) -> bool:
        return self.attributes.get(name) is not None

    def set(self, name: str, value: Any) -> None:
        self.attributes[name] = value

    def update(self, attributes: Mapping[str, Any]) -> None:
        self.attributes.update(attributes)

    def pick(self, *names: str) -> dict[str, Any]:
        return {k: v for k, v in self.attributes.items() if k in names}

    def omit(self, *names: str) -> dict[str, Any]:
        return {k: v for k, v in self.attributes.items() if k not in names}

    def to_json(
        self,
        *,
        include: Sequence[str] | None = None,
        exclude: Sequence[str] | None = None,
    ) -> dict[str, Any]:
        if exclude:
            return self.omit(*exclude)
        if include:
            return self.pick(*include)
        return dict(self.attributes)

    def to_json_value(self) -> Any:
        return serialize_dates(self.attributes, self.record_type.date_policy)


class Collection:
    def __init__(
        self,
        record_type: RecordType,
        records: Iterable[Record | Mapping[str, Any]] = (),
        *,
        table_name: str | None = None,
        url: str | None = None,
    ) -> None:
        self.record_type = record_type
        self.table_name = table_name
        self.url = url
        self.records: list[Record] = []
        for record in records:
            self.add(record)

    def __repr__(self) -> str:
        return f"Collection({self.records!r})"

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def __getitem__(self, index: int) -> Record:
        return self.records[index]

    def add(self, record: Record | Mapping[str, Any]) -> Record:
        if not isinstance(record, Record):
            record = Record(self.record_type, record)
        self.records.append(record)
        return record

    def reset(self, items: Iterable[Mapping[str, Any]]) -> None:
        self.records = [Record(self.record_type, item) for item in items]

    def resolve_table_name(self) -> str:
        if self.table_name:
            return self.table_name
        if self.url:
            return derive_table_name(self.url)
        return self.record_type.resolve_table_name()

    def to_json_value(self) -> Any:
        return [record.to_json_value() for record in self.records]
