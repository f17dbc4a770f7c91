from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any, NamedTuple

from .codec import AttributeCodec

OPERATIONS = frozenset({"put_item", "get_item", "update_item", "delete_item", "query", "scan"})

type RequestCheck = Mapping[str, Any] | Callable[[Mapping[str, Any]], None]


class _Wildcard:
    def __eq__(self, other: object) -> bool:
        return True

    def __hash__(self) -> int:
        return 0

    def __repr__(self) -> str:
        return "ANY"


ANY: Any = _Wildcard()


def request_differences(expected: Any, actual: Any, path: str) -> list[str]:
    """Every place ``actual`` departs from ``expected``.

    Mappings match partially (extra keys in ``actual`` are fine), lists match
    element by element, and ``ANY`` matches anything.
    """
    if isinstance(expected, Mapping):
        if not isinstance(actual, Mapping):
            return [f"{path}: expected mapping, got {type(actual).__name__}"]
        problems: list[str] = []
        for key, want in expected.items():
            if key in actual:
                problems.extend(request_differences(want, actual[key], f"{path}.{key}"))
            else:
                problems.append(f"{path}: missing key {key!r}")
        return problems

    if isinstance(expected, list):
        if not isinstance(actual, list):
            return [f"{path}: expected list, got {type(actual).__name__}"]
        if len(expected) != len(actual):
            return [f"{path}: expected {len(expected)} items, got {len(actual)}"]
        problems = []
        for i, (want, got) in enumerate(zip(expected, actual, strict=True)):
            problems.extend(request_differences(want, got, f"{path}[{i}]"))
        return problems

    return [] if expected == actual else [f"{path}: expected {expected!r}, got {actual!r}"]


class _Scripted(NamedTuple):
    operation: str
    check: RequestCheck | None
    response: dict[str, Any]
    error: Exception | None


class FakeDynamoDBClient:
    """Stand-in for the boto3 DynamoDB client, answering one scripted call at a time.

    ``expect`` queues the next operation. Its request is compared with a partial
    mapping (all differences are reported together) or handed to a callable, then
    answered with ``response`` or raised ``error``. ``item=`` / ``items=`` script a
    GetItem or Query/Scan answer from native attributes through ``codec``, and
    ``written`` decodes what the code under test sent.
    """

    def __init__(self, codec: AttributeCodec | None = None) -> None:
        self.codec = codec or AttributeCodec()
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._script: list[_Scripted] = []

    def expect(
        self,
        operation: str,
        check: RequestCheck | None = None,
        *,
        response: Mapping[str, Any] | None = None,
        error: Exception | None = None,
        item: Mapping[str, Any] | None = None,
        items: Iterable[Mapping[str, Any]] | None = None,
    ) -> None:
        if operation not in OPERATIONS:
            raise ValueError(f"unsupported operation: {operation}")

        answer = dict(response or {})
        if item is not None:
            answer["Item"] = self.codec.encode_item(item)
        if items is not None:
            answer["Items"] = [self.codec.encode_item(i) for i in items]
            answer["Count"] = len(answer["Items"])
        self._script.append(_Scripted(operation, check, answer, error))

    def assert_no_pending(self) -> None:
        if self._script:
            raise AssertionError(f"pending expected calls: {[s.operation for s in self._script]}")

    def requests(self, operation: str) -> list[dict[str, Any]]:
        return [req for name, req in self.calls if name == operation]

    def written(self, operation: str, part: str = "Item") -> list[dict[str, Any]]:
        """Decoded ``Item`` (or ``Key``) of each recorded ``operation`` request."""
        return [self.codec.decode_item(req[part]) for req in self.requests(operation) if part in req]

    def __getattr__(self, name: str) -> Callable[..., dict[str, Any]]:
        if name not in OPERATIONS:
            raise AttributeError(name)

        def call(**request: Any) -> dict[str, Any]:
            return self._answer(name, request)

        return call

    def _answer(self, operation: str, request: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((operation, dict(request)))
        if not self._script:
            raise AssertionError(f"unexpected call: {operation}")

        scripted = self._script.pop(0)
        if scripted.operation != operation:
            raise AssertionError(f"expected {scripted.operation}, got {operation}")

        if callable(scripted.check):
            scripted.check(request)
        elif scripted.check is not None:
            problems = request_differences(scripted.check, request, operation)
            if problems:
                raise AssertionError("; ".join(problems))

        if scripted.error is not None:
            raise scripted.error
        return dict(scripted.response)
