from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar

from .errors import DynasyncError

type Callback = Callable[[Outcome, RequestOptions], None]


@dataclass(frozen=True)
class RequestOptions:
    """Per-call options.

    ``dynamodb`` is merged into the request last and overrides anything computed.
    ``query`` / ``scan`` hold the raw parameters for a collection fetch; ``query``
    selects a Query request, otherwise a Scan is sent. ``include`` / ``exclude``
    narrow the attributes written by a save.
    """

    success: Callback | None = None
    error: Callback | None = None
    complete: Callback | None = None
    dynamodb: Mapping[str, Any] | None = None
    query: Mapping[str, Any] | None = None
    scan: Mapping[str, Any] | None = None
    include: Sequence[str] | None = None
    exclude: Sequence[str] | None = None


@dataclass(frozen=True)
class Success:
    attributes: dict[str, Any] | None = None
    items: list[dict[str, Any]] | None = None
    raw_response: Mapping[str, Any] | None = None

    ok: ClassVar[bool] = True

    @property
    def last_evaluated_key(self) -> Mapping[str, Any] | None:
        if self.raw_response is None:
            return None
        return self.raw_response.get("LastEvaluatedKey") or None

    def unwrap(self) -> Any:
        if self.items is not None:
            return self.items
        return self.attributes


@dataclass(frozen=True)
class Failure:
    error: DynasyncError
    raw_response: Mapping[str, Any] | None = None

    ok: ClassVar[bool] = False

    @property
    def kind(self) -> str:
        return self.error.kind

    def unwrap(self) -> Any:
        raise self.error


type Outcome = Success | Failure


def settle(outcome: Outcome, options: RequestOptions) -> Outcome:
    try:
        if isinstance(outcome, Success):
            if options.success is not None:
                options.success(outcome, options)
        elif options.error is not None:
            options.error(outcome, options)
    finally:
        if options.complete is not None:
            options.complete(outcome, options)
    return outcome
