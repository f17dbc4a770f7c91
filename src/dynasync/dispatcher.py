from __future__ import annotations

import logging
from collections.abc import Mapping
from concurrent.futures import CancelledError, Executor, Future
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Literal

from botocore.exceptions import BotoCoreError, ClientError

from .aws_errors import map_store_error
from .codec import AttributeCodec, is_wire_attribute
from .conditions import CONDITION_BLOCKS, merge_conditions, where_conditions
from .errors import KeyGenerationError, NotFoundError, ValidationError
from .keys import Immediate, Pending, normalize_generated_key
from .model import Collection, Record
from .outcome import Failure, Outcome, RequestOptions, Success, settle
from .runtime import create_store_client

if TYPE_CHECKING:
    from .runtime import StoreSettings

logger = logging.getLogger(__name__)

type SyncMethod = Literal["create", "update", "read", "delete"]


def _prepare_params(params: Mapping[str, Any], codec: AttributeCodec) -> dict[str, Any]:
    out = dict(params)
    for block in CONDITION_BLOCKS:
        if out.get(block) is not None:
            out[block] = merge_conditions(out[block])

    values = out.get("ExpressionAttributeValues")
    if values:
        out["ExpressionAttributeValues"] = {
            ref: value if is_wire_attribute(value) else codec.encode(value, ref)
            for ref, value in values.items()
        }
    return out


class Dispatcher:
    """Turns save/fetch/destroy/collection-fetch intents into DynamoDB requests.

    Each operation sends at most one request and returns exactly one ``Outcome``.
    Store and key-generation failures come back as ``Failure``; bad input (values
    the codec cannot encode, fetching a record without a full key) raises
    ``ValidationError`` before anything is sent.
    """

    def __init__(
        self,
        client: Any | None = None,
        *,
        settings: StoreSettings | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._client: Any = client if client is not None else create_store_client(settings)
        self._executor = executor

    @property
    def client(self) -> Any:
        return self._client

    def build_put_request(
        self,
        record: Record,
        options: RequestOptions | None = None,
        *,
        changed: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        options = options or RequestOptions()
        record_type = record.record_type

        attrs = record.to_json(include=options.include, exclude=options.exclude)
        for name in record_type.key_attributes:
            if name not in attrs and record.get(name) is not None:
                attrs[name] = record.get(name)
        if changed:
            attrs.update(changed)

        req: dict[str, Any] = {
            "TableName": record_type.resolve_table_name(),
            "Item": record_type.codec.encode_item(attrs),
        }
        if options.dynamodb:
            req.update(options.dynamodb)
        return req

    def build_key_request(self, record: Record, options: RequestOptions | None = None) -> dict[str, Any]:
        options = options or RequestOptions()
        record_type = record.record_type
        key = record.key
        if not key.is_complete():
            raise ValidationError(f"record key is incomplete: {key.as_dict()!r}")

        req: dict[str, Any] = {
            "TableName": record_type.resolve_table_name(),
            "Key": record_type.codec.encode_item(key.as_dict()),
        }
        if options.dynamodb:
            req.update(options.dynamodb)
        return req

    def build_collection_request(
        self, collection: Collection, options: RequestOptions | None = None
    ) -> tuple[Literal["query", "scan"], dict[str, Any]]:
        options = options or RequestOptions()
        operation: Literal["query", "scan"]
        if options.query is not None:
            operation, params = "query", options.query
        else:
            operation, params = "scan", options.scan or {}

        req: dict[str, Any] = {"TableName": collection.resolve_table_name()}
        req.update(_prepare_params(params, collection.record_type.codec))
        if options.dynamodb:
            req.update(options.dynamodb)
        return operation, req

    def save(self, record: Record, options: RequestOptions | None = None) -> Outcome:
        options = options or RequestOptions()
        table_name = record.record_type.resolve_table_name()

        changed: dict[str, Any] = {}
        if not record.is_identified:
            logger.debug("put %s: resolving key", table_name)
            try:
                changed = self._resolve_key(record, options)
            except KeyGenerationError as err:
                logger.warning("put %s: key generation failed: %s", table_name, err)
                return settle(Failure(error=err), options)

        req = self.build_put_request(record, options, changed=changed)

        logger.debug("put %s: dispatching", table_name)
        try:
            resp = self._client.put_item(**req)
        except (ClientError, BotoCoreError) as err:
            return self._store_failure("put", table_name, err, options)

        record.update(changed)
        return settle(Success(attributes=changed, raw_response=resp), options)

    def fetch(self, record: Record, options: RequestOptions | None = None) -> Outcome:
        options = options or RequestOptions()
        req = self.build_key_request(record, options)
        table_name = req["TableName"]

        logger.debug("get %s: dispatching", table_name)
        try:
            resp = self._client.get_item(**req)
        except (ClientError, BotoCoreError) as err:
            return self._store_failure("get", table_name, err, options)

        item = resp.get("Item")
        if not item:
            missing = NotFoundError(f"item not found in {table_name}")
            return settle(Failure(error=missing, raw_response=resp), options)

        try:
            decoded = record.record_type.codec.decode_item(item)
        except ValidationError as err:
            return settle(Failure(error=err, raw_response=resp), options)

        record.update(decoded)
        return settle(Success(attributes=decoded, raw_response=resp), options)

    def destroy(self, record: Record, options: RequestOptions | None = None) -> Outcome:
        options = options or RequestOptions()
        req = self.build_key_request(record, options)
        table_name = req["TableName"]

        logger.debug("delete %s: dispatching", table_name)
        try:
            resp = self._client.delete_item(**req)
        except (ClientError, BotoCoreError) as err:
            return self._store_failure("delete", table_name, err, options)

        return settle(Success(raw_response=resp), options)

    def fetch_collection(self, collection: Collection, options: RequestOptions | None = None) -> Outcome:
        options = options or RequestOptions()
        operation, req = self.build_collection_request(collection, options)
        table_name = req["TableName"]

        logger.debug("%s %s: dispatching", operation, table_name)
        try:
            if operation == "query":
                resp = self._client.query(**req)
            else:
                resp = self._client.scan(**req)
        except (ClientError, BotoCoreError) as err:
            return self._store_failure(operation, table_name, err, options)

        codec = collection.record_type.codec
        try:
            items = [codec.decode_item(item) for item in resp.get("Items", [])]
        except ValidationError as err:
            return settle(Failure(error=err, raw_response=resp), options)

        collection.reset(items)
        return settle(Success(items=items, raw_response=resp), options)

    def query(
        self,
        collection: Collection,
        params: Mapping[str, Any],
        options: RequestOptions | None = None,
    ) -> Outcome:
        return self.fetch_collection(
            collection, replace(options or RequestOptions(), query=params, scan=None)
        )

    def scan(
        self,
        collection: Collection,
        params: Mapping[str, Any] | None = None,
        options: RequestOptions | None = None,
    ) -> Outcome:
        return self.fetch_collection(
            collection, replace(options or RequestOptions(), query=None, scan=params or {})
        )

    def query_where(
        self,
        collection: Collection,
        where: Mapping[str, Any],
        options: RequestOptions | None = None,
    ) -> Outcome:
        conditions = where_conditions(collection.record_type.codec, where)
        return self.query(collection, {"KeyConditions": conditions}, options)

    def scan_where(
        self,
        collection: Collection,
        where: Mapping[str, Any],
        options: RequestOptions | None = None,
    ) -> Outcome:
        conditions = where_conditions(collection.record_type.codec, where)
        return self.scan(collection, {"ScanFilter": conditions}, options)

    def sync(
        self,
        method: SyncMethod,
        target: Record | Collection,
        options: RequestOptions | None = None,
    ) -> Outcome:
        if method in {"create", "update"}:
            if not isinstance(target, Record):
                raise ValidationError("only records can be saved")
            return self.save(target, options)
        if method == "read":
            if isinstance(target, Collection):
                return self.fetch_collection(target, options)
            return self.fetch(target, options)
        if method == "delete":
            if not isinstance(target, Record):
                raise ValidationError("only records can be deleted")
            return self.destroy(target, options)
        raise ValidationError(f"unsupported sync method: {method}")

    def submit(
        self,
        method: SyncMethod,
        target: Record | Collection,
        options: RequestOptions | None = None,
    ) -> Future[Outcome]:
        if self._executor is None:
            raise ValueError("submit requires an executor")
        if method in {"create", "update"} and isinstance(target, Record):
            # a save on the pool would block waiting for a key queued behind it
            if getattr(target.record_type.key_generator, "executor", None) is self._executor:
                raise ValueError("the key generator and submit cannot share an executor")
        return self._executor.submit(self.sync, method, target, options)

    def _resolve_key(self, record: Record, options: RequestOptions) -> dict[str, Any]:
        record_type = record.record_type
        try:
            result = record_type.key_generator.new_key(record, options)
        except KeyGenerationError:
            raise
        except Exception as err:
            raise KeyGenerationError(f"key generator failed: {err}") from err

        if isinstance(result, Pending):
            try:
                value = result.future.result()
            except KeyGenerationError:
                raise
            except (CancelledError, Exception) as err:
                raise KeyGenerationError(f"key generator failed: {err}") from err
        elif isinstance(result, Immediate):
            value = result.value
        else:
            raise KeyGenerationError(
                f"key generator returned {type(result).__name__}, expected Immediate or Pending"
            )

        changed = normalize_generated_key(record_type, value)
        logger.debug("generated key %r", changed)
        return changed

    def _store_failure(
        self,
        operation: str,
        table_name: str,
        err: ClientError | BotoCoreError,
        options: RequestOptions,
    ) -> Outcome:
        error = map_store_error(err)
        error.__cause__ = err
        logger.warning("%s %s failed: %s", operation, table_name, error)
        return settle(Failure(error=error, raw_response=error.raw), options)
