"""
Generic typed CRUD over one document store collection.

A collection lives under a single root path and each record under
``<collection>/<id>``. Reads always re-fetch; nothing is cached between
operations. A failed read falls back to the seed but says so through
``ListResult`` instead of passing the seed off as real data.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Literal, Optional, Sequence, Type, TypeVar

from pydantic import ValidationError

from azadi_cms.db.document_client import BaseDocumentClient, is_addressable_key
from azadi_cms.db.errors import InvalidRecordIdError, RecordNotFoundError, StoreShapeError, StoreTransportError
from azadi_cms.db.schemas import Record
from azadi_cms.db.store_values import Absent, MalformedValue, to_raw_records
from azadi_cms.utils.env import env_int

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Record)

ListSource = Literal["store", "seed", "fallback"]


@dataclass(frozen=True)
class BatchWriteConfig:
    concurrency: int = 4
    retries: int = 2

    @classmethod
    def from_env(cls) -> "BatchWriteConfig":
        return cls(
            concurrency=env_int("BATCH_WRITE_CONCURRENCY", 4, minimum=1),
            retries=env_int("BATCH_WRITE_RETRIES", 2, minimum=0),
        )


@dataclass
class ListResult(Generic[T]):
    """Records read from a collection, tagged with where they came from.

    ``source`` is ``store`` for data actually read, ``seed`` when the store
    confirmed the collection was never written, and ``fallback`` when the
    read failed and the seed stands in for unknown data.
    """

    records: List[T]
    source: ListSource = "store"
    error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return self.error is not None


@dataclass
class BatchWriteResult:
    succeeded: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class CollectionRepository(Generic[T]):
    def __init__(
        self,
        client: BaseDocumentClient,
        collection: str,
        model: Type[T],
        seed: Callable[[], List[Dict[str, Any]]],
        *,
        batch_config: Optional[BatchWriteConfig] = None,
    ) -> None:
        self.client = client
        self.collection = collection
        self.model = model
        self._seed = seed
        self.batch_config = batch_config or BatchWriteConfig.from_env()

    def _path(self, record_id: str) -> str:
        if not is_addressable_key(record_id):
            raise InvalidRecordIdError(self.collection, record_id)
        return f"{self.collection}/{record_id}"

    def _parse(self, raw_records: Sequence[Dict[str, Any]], warnings: List[str]) -> List[T]:
        records: List[T] = []
        seen: set = set()
        for raw in raw_records:
            try:
                record = self.model.model_validate(raw)
            except ValidationError as exc:
                message = f"Skipping invalid {self.collection} record {raw.get('id', '?')}: {exc.error_count()} error(s)"
                logger.warning(message)
                warnings.append(message)
                continue
            if record.id in seen:
                message = f"Skipping duplicate {self.collection} id {record.id}"
                logger.warning(message)
                warnings.append(message)
                continue
            seen.add(record.id)
            records.append(record)
        return records

    def seed(self) -> List[T]:
        return self._parse(self._seed(), [])

    async def list(self) -> ListResult[T]:
        try:
            value = await self.client.fetch_value(self.collection)
        except StoreTransportError as exc:
            logger.warning("Reading %s failed; serving seed as fallback: %s", self.collection, exc)
            return ListResult(records=self.seed(), source="fallback", error=str(exc))

        if isinstance(value, Absent):
            return ListResult(records=self.seed(), source="seed")

        warnings: List[str] = []
        if isinstance(value, MalformedValue):
            message = f"{StoreShapeError(self.collection, value.type_name)}; treating as empty"
            logger.warning(message)
            warnings.append(message)
        records = self._parse(to_raw_records(value, path=self.collection), warnings)
        return ListResult(records=records, source="store", warnings=warnings)

    async def get(self, record_id: str) -> Optional[T]:
        raw = await self.client.fetch(self._path(record_id))
        if not isinstance(raw, dict):
            return None
        raw.setdefault("id", record_id)
        return self.model.model_validate(raw)

    async def require(self, record_id: str) -> T:
        record = await self.get(record_id)
        if record is None:
            raise RecordNotFoundError(self.collection, record_id)
        return record

    async def save(self, record: T) -> T:
        await self.client.put(self._path(record.id), record.to_wire())
        return record

    async def patch(self, record_id: str, partial: Dict[str, Any]) -> None:
        if "id" in partial and partial["id"] != record_id:
            raise ValueError("Record ids are immutable")
        await self.client.patch(self._path(record_id), partial)

    async def remove(self, record_id: str) -> None:
        await self.client.delete(self._path(record_id))

    async def _save_with_retry(self, record: T) -> None:
        attempts = self.batch_config.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                await self.save(record)
                return
            except StoreTransportError as exc:
                if attempt == attempts:
                    raise
                logger.warning(
                    "Retrying save of %s/%s (attempt %d/%d): %s",
                    self.collection, record.id, attempt, attempts, exc,
                )

    async def save_many(self, records: Sequence[T]) -> BatchWriteResult:
        """Write each record independently with bounded concurrency.

        A failure on one record never stops the others; every failure is
        reported in the result.
        """
        semaphore = asyncio.Semaphore(self.batch_config.concurrency)

        async def _guarded(record: T) -> None:
            async with semaphore:
                await self._save_with_retry(record)

        outcomes = await asyncio.gather(*(_guarded(r) for r in records), return_exceptions=True)
        result = BatchWriteResult()
        for record, outcome in zip(records, outcomes):
            if isinstance(outcome, BaseException):
                result.failed[record.id] = str(outcome)
            else:
                result.succeeded.append(record.id)
        if result.failed:
            logger.error(
                "Batch write to %s finished with failures",
                self.collection,
                extra={"succeeded": len(result.succeeded), "failed_ids": sorted(result.failed)},
            )
        return result
