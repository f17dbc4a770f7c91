from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class DynasyncError(Exception):
    kind = "Error"


class ValidationError(DynasyncError):
    kind = "Validation"


class NotFoundError(DynasyncError):
    kind = "NotFound"


class KeyGenerationError(DynasyncError):
    kind = "KeyGeneration"


class StoreError(DynasyncError):
    kind = "DBError"

    def __init__(self, *, code: str, message: str, raw: Mapping[str, Any] | None = None) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message
        self.raw = raw


class ConditionFailedError(StoreError):
    pass
