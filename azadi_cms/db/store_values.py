"""
Wire value classification for the keyed document store.

The store hands back one of three shapes for a collection root: nothing,
an associative map keyed by record id, or a sequence (when ids happen to be
sequential integers). Values are classified once here so repositories only
ever see a list of raw record dicts.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Absent:
    pass


@dataclass(frozen=True)
class MapValue:
    entries: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ListValue:
    items: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class MalformedValue:
    value: Any = None

    @property
    def type_name(self) -> str:
        return type(self.value).__name__


StoreValue = Union[Absent, MapValue, ListValue, MalformedValue]


def classify(raw: Any) -> StoreValue:
    if raw is None:
        return Absent()
    if isinstance(raw, dict):
        return MapValue(entries=raw)
    if isinstance(raw, list):
        return ListValue(items=raw)
    return MalformedValue(value=raw)


def to_raw_records(value: StoreValue, *, path: str = "") -> List[Dict[str, Any]]:
    """Flatten a classified collection value into raw record dicts.

    Map entries keep the order the store returned them in; a record stored
    without an ``id`` field inherits its map key. Sequence holes and
    non-object entries are dropped. Absent and malformed values yield ``[]``.
    """
    records: List[Dict[str, Any]] = []
    if isinstance(value, MapValue):
        for key, item in value.entries.items():
            if not isinstance(item, dict):
                logger.warning("Skipping non-object entry %s/%s (%s)", path, key, type(item).__name__)
                continue
            record = dict(item)
            record.setdefault("id", str(key))
            records.append(record)
    elif isinstance(value, ListValue):
        for index, item in enumerate(value.items):
            if item is None:
                continue
            if not isinstance(item, dict):
                logger.warning("Skipping non-object entry %s[%d] (%s)", path, index, type(item).__name__)
                continue
            records.append(dict(item))
    return records
