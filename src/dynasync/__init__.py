from __future__ import annotations

import json
import re
from importlib.resources import files
from typing import TYPE_CHECKING, Any

from .codec import AttributeCodec, decode_attribute, encode_attribute, is_wire_attribute
from .conditions import build_condition, merge_conditions, where_conditions
from .dates import ISO_DATE_PATTERN, DatePolicy, IsoDatePolicy
from .errors import (
    ConditionFailedError,
    DynasyncError,
    KeyGenerationError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from .keys import (
    CounterKeyGenerator,
    Immediate,
    KeyGenerator,
    NoKeyGenerator,
    Pending,
    RecordKey,
    UuidKeyGenerator,
    current_key,
    is_identified,
)
from .model import Collection, ModelDefinitionError, Record, RecordType, derive_table_name
from .outcome import Failure, Outcome, RequestOptions, Success

if TYPE_CHECKING:
    from .dispatcher import Dispatcher
    from .runtime import (
        AwsCallMetric,
        StoreSettings,
        create_boto3_config,
        create_store_client,
        instrument_boto3_client,
    )


def _read_repo_version() -> str:
    try:
        data = json.loads(files(__package__).joinpath("version.json").read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return "0.0.0"

    version = data.get("version")
    return version if isinstance(version, str) and version else "0.0.0"


def _normalize_repo_version(repo_version: str) -> str:
    match = re.match(r"^(\d+\.\d+\.\d+)-rc\.?([0-9]+)$", repo_version)
    if match:
        return f"{match.group(1)}rc{match.group(2)}"
    return repo_version


__repo_version__ = _read_repo_version()
__version__ = _normalize_repo_version(__repo_version__)


def __getattr__(name: str) -> Any:
    if name == "Dispatcher":
        from .dispatcher import Dispatcher

        return Dispatcher
    if name in {
        "AwsCallMetric",
        "StoreSettings",
        "create_boto3_config",
        "create_store_client",
        "instrument_boto3_client",
    }:
        from . import runtime

        return getattr(runtime, name)
    raise AttributeError(name)


__all__ = [
    "AttributeCodec",
    "AwsCallMetric",
    "build_condition",
    "Collection",
    "ConditionFailedError",
    "CounterKeyGenerator",
    "create_boto3_config",
    "create_store_client",
    "current_key",
    "DatePolicy",
    "decode_attribute",
    "derive_table_name",
    "Dispatcher",
    "DynasyncError",
    "encode_attribute",
    "Failure",
    "Immediate",
    "instrument_boto3_client",
    "is_identified",
    "is_wire_attribute",
    "ISO_DATE_PATTERN",
    "IsoDatePolicy",
    "KeyGenerationError",
    "KeyGenerator",
    "merge_conditions",
    "ModelDefinitionError",
    "NoKeyGenerator",
    "NotFoundError",
    "Outcome",
    "Pending",
    "Record",
    "RecordKey",
    "RecordType",
    "RequestOptions",
    "StoreError",
    "StoreSettings",
    "Success",
    "UuidKeyGenerator",
    "ValidationError",
    "where_conditions",
    "__repo_version__",
    "__version__",
]
