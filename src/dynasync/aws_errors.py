from __future__ import annotations

from botocore.exceptions import BotoCoreError, ClientError

from .errors import ConditionFailedError, StoreError


def map_client_error(err: ClientError) -> StoreError:
    code = str(err.response.get("Error", {}).get("Code", ""))
    message = str(err.response.get("Error", {}).get("Message", ""))
    raw = dict(err.response)

    if code == "ConditionalCheckFailedException":
        return ConditionFailedError(code=code, message=message or str(err), raw=raw)

    return StoreError(code=code or "UnknownError", message=message or str(err), raw=raw)


def map_store_error(err: ClientError | BotoCoreError) -> StoreError:
    if isinstance(err, ClientError):
        return map_client_error(err)
    return StoreError(code=type(err).__name__, message=str(err))
