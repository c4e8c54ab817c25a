"""
Leader and member repositories.

Display order is the ``order`` attribute. Python's sort is stable, so records
sharing an ``order`` value keep the sequence ``list()`` produced them in.
"""
from __future__ import annotations

import logging
from typing import List, Sequence, TypeVar

from azadi_cms.db.repositories.collections import BatchWriteResult, CollectionRepository, ListResult
from azadi_cms.db.schemas import Member

logger = logging.getLogger(__name__)

P = TypeVar("P", bound=Member)


def sort_by_order(records: Sequence[P]) -> List[P]:
    return sorted(records, key=lambda record: record.order)


class OrderedCollectionRepository(CollectionRepository[P]):
    async def list_sorted(self) -> ListResult[P]:
        result = await self.list()
        result.records = sort_by_order(result.records)
        return result

    async def reorder(self, ids_in_display_order: Sequence[str]) -> BatchWriteResult:
        """Assign ``order = position + 1`` to the given ids and persist the changes.

        Only records whose order actually changes are written. Ids that are
        not in the collection are reported as failures.
        """
        result = await self.list()
        if result.source != "store":
            outcome = BatchWriteResult()
            reason = result.error or f"{self.collection} has no stored records"
            for record_id in ids_in_display_order:
                outcome.failed[record_id] = reason
            return outcome

        by_id = {record.id: record for record in result.records}
        changed: List[P] = []
        missing = BatchWriteResult()
        for position, record_id in enumerate(ids_in_display_order, start=1):
            record = by_id.get(record_id)
            if record is None:
                missing.failed[record_id] = f"not found in {self.collection}"
                continue
            if record.order != position:
                record.order = position
                changed.append(record)

        written = await self.save_many(changed)
        unchanged = [
            record_id
            for record_id in ids_in_display_order
            if record_id in by_id and record_id not in written.succeeded and record_id not in written.failed
        ]
        logger.info(
            "Reordered %s: %d written, %d unchanged, %d failed",
            self.collection, len(written.succeeded), len(unchanged), len(written.failed) + len(missing.failed),
        )
        return BatchWriteResult(
            succeeded=written.succeeded + unchanged,
            failed={**missing.failed, **written.failed},
        )
