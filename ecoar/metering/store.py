"""Period-keyed goal store on top of a string backend.

Keys are `MetaKey`s serialised as ``{namespace}_{entity}_{kind}_{index}``.
`%` and `_` inside the namespace and entity id are percent-escaped, so an
entity id such as ``"a_b"`` can never collide with another key.

Every read goes to the backend; nothing is cached in memory. Backend failures
never escape: `put` reports False, reads degrade to "absent".
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

from pydantic import BaseModel, Field, ValidationError

from ecoar.metering.backends import StorageBackend, StorageError
from ecoar.metering.extractor import coerce_number
from ecoar.metering.models import MetaKey, MetaRecord, PeriodKind, canonical_entity_id

_LOGGER = logging.getLogger(__name__)

KEY_SEPARATOR = "_"


class _StoredValue(BaseModel):
    value: float = Field(ge=0.0, allow_inf_nan=False)
    updated_at: datetime


def _escape(part: str) -> str:
    return part.replace("%", "%25").replace(KEY_SEPARATOR, "%5F")


def _unescape(part: str) -> str:
    return part.replace("%5F", KEY_SEPARATOR).replace("%25", "%")


def serialize_key(key: MetaKey) -> str:
    return KEY_SEPARATOR.join(
        (_escape(key.namespace), _escape(key.entity_id), key.period_kind.value, str(key.period_index))
    )


def parse_key(raw: str) -> MetaKey | None:
    """Inverse of `serialize_key`. Returns None for keys this store did not write."""
    parts = raw.split(KEY_SEPARATOR)
    if len(parts) != 4:
        return None
    namespace, entity_id, kind, index = parts
    try:
        return MetaKey.build(_unescape(namespace), _unescape(entity_id), kind, int(index))
    except ValueError:
        return None


def entity_prefix(namespace: str, entity_id: str | int) -> str:
    return f"{_escape(namespace)}{KEY_SEPARATOR}{_escape(canonical_entity_id(entity_id))}{KEY_SEPARATOR}"


class KeyedValueStore:
    """Durable mapping MetaKey → non-negative float."""

    def __init__(self, backend: StorageBackend) -> None:
        self._backend = backend
        self._write_lock = asyncio.Lock()

    async def put(
        self,
        namespace: str,
        entity_id: str | int,
        period_kind: PeriodKind | str,
        period_index: int,
        value: float,
    ) -> bool:
        number = coerce_number(value)
        if number is None or number < 0:
            _LOGGER.warning("Rejected value %r for %s/%s/%s/%s", value, namespace, entity_id, period_kind, period_index)
            return False
        try:
            key = MetaKey.build(namespace, entity_id, period_kind, period_index)
        except (TypeError, ValueError):
            _LOGGER.warning("Rejected key %s/%s/%s/%s", namespace, entity_id, period_kind, period_index)
            return False

        payload = _StoredValue(value=number, updated_at=datetime.now(timezone.utc))
        raw_key = serialize_key(key)
        async with self._write_lock:
            try:
                await self._backend.set_item(raw_key, payload.model_dump_json())
            except StorageError:
                _LOGGER.error("Could not persist %s", raw_key, exc_info=True)
                return False
        _LOGGER.info("Saved %s = %s", raw_key, number)
        return True

    async def get(
        self,
        namespace: str,
        entity_id: str | int,
        period_kind: PeriodKind | str,
        period_index: int,
    ) -> float | None:
        record = await self.get_record(MetaKey.build(namespace, entity_id, period_kind, period_index))
        return record.value if record is not None else None

    async def get_record(self, key: MetaKey) -> MetaRecord | None:
        raw_key = serialize_key(key)
        try:
            raw = await self._backend.get_item(raw_key)
        except StorageError:
            _LOGGER.error("Could not read %s, treating as absent", raw_key, exc_info=True)
            return None
        if raw is None:
            _LOGGER.debug("No stored value for %s", raw_key)
            return None
        try:
            stored = _StoredValue.model_validate_json(raw)
        except ValidationError:
            _LOGGER.warning("Undecodable payload for %s, treating as absent", raw_key)
            return None
        return MetaRecord(key=key, value=stored.value, updated_at=stored.updated_at)

    async def delete(
        self,
        namespace: str,
        entity_id: str | int,
        period_kind: PeriodKind | str,
        period_index: int,
    ) -> None:
        raw_key = serialize_key(MetaKey.build(namespace, entity_id, period_kind, period_index))
        async with self._write_lock:
            try:
                await self._backend.remove_item(raw_key)
            except StorageError:
                _LOGGER.error("Could not delete %s", raw_key, exc_info=True)
                return
        _LOGGER.info("Deleted %s", raw_key)

    async def list_all(self, namespace: str, entity_id: str | int) -> list[MetaRecord]:
        """Every stored record of one entity in one namespace. Order is unspecified."""
        try:
            raw_keys = await self._backend.keys(entity_prefix(namespace, entity_id))
        except StorageError:
            _LOGGER.error("Could not list %s records for %s", namespace, entity_id, exc_info=True)
            return []

        records: list[MetaRecord] = []
        for raw_key in raw_keys:
            key = parse_key(raw_key)
            if key is None:
                continue
            record = await self.get_record(key)
            if record is not None:
                records.append(record)
        return records

    async def clear(self, namespace: str | None = None) -> int:
        """Remove every record of `namespace` (all namespaces when None). Returns the count removed."""
        prefix = f"{_escape(namespace)}{KEY_SEPARATOR}" if namespace is not None else ""
        removed = 0
        async with self._write_lock:
            try:
                raw_keys = await self._backend.keys(prefix)
                for raw_key in raw_keys:
                    if parse_key(raw_key) is None:
                        continue
                    await self._backend.remove_item(raw_key)
                    removed += 1
            except StorageError:
                _LOGGER.error("Clear interrupted after %d records", removed, exc_info=True)
        _LOGGER.info("Cleared %d records (namespace=%s)", removed, namespace)
        return removed
