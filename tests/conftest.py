import os
import sys
from typing import Any, Dict, Iterable, Optional

import pytest

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from azadi_cms.db.document_client import InMemoryDocumentClient, normalize_path  # noqa: E402
from azadi_cms.db.errors import StoreTransportError  # noqa: E402
from azadi_cms.db.repositories import BatchWriteConfig, build_repositories  # noqa: E402


class FlakyDocumentClient(InMemoryDocumentClient):
    """In-memory store that fails selected paths with a transport error.

    ``fail_reads`` / ``fail_writes`` hold path prefixes. ``write_failures``
    maps an exact path to the number of times its writes fail before
    succeeding.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(initial)
        self.fail_reads: set = set()
        self.fail_writes: set = set()
        self.write_failures: Dict[str, int] = {}
        self.write_attempts: Dict[str, int] = {}

    @staticmethod
    def _matches(path: str, prefixes: Iterable[str]) -> bool:
        path = normalize_path(path)
        return any(path == p or path.startswith(p + "/") for p in prefixes)

    def _check_write(self, path: str) -> None:
        path = normalize_path(path)
        self.write_attempts[path] = self.write_attempts.get(path, 0) + 1
        if self._matches(path, self.fail_writes):
            raise StoreTransportError(path, "simulated write failure", 503)
        remaining = self.write_failures.get(path, 0)
        if remaining:
            self.write_failures[path] = remaining - 1
            raise StoreTransportError(path, "simulated transient failure", 503)

    async def fetch(self, path: str) -> Any:
        if self._matches(path, self.fail_reads):
            raise StoreTransportError(normalize_path(path), "simulated read failure")
        return await super().fetch(path)

    async def put(self, path: str, value: Any) -> None:
        self._check_write(path)
        await super().put(path, value)

    async def patch(self, path: str, partial: Dict[str, Any]) -> None:
        self._check_write(path)
        await super().patch(path, partial)

    async def delete(self, path: str) -> None:
        self._check_write(path)
        await super().delete(path)


@pytest.fixture
def fake_store():
    return FlakyDocumentClient()


@pytest.fixture
def batch_config():
    return BatchWriteConfig(concurrency=2, retries=1)


@pytest.fixture
def repositories(fake_store, batch_config):
    return build_repositories(fake_store, batch_config=batch_config)


@pytest.fixture
def leader_karim():
    return {
        "id": "L1",
        "name": {"en": "Karim", "bn": ""},
        "designation": {"en": "President", "bn": "সভাপতি"},
        "image": "",
        "order": 1,
    }


@pytest.fixture
def sample_donation():
    return {
        "id": "d1",
        "donorName": "Rahim",
        "mobile": "01700000000",
        "amount": 500,
        "method": "Bkash",
        "trxId": "TX1",
        "isAnonymous": False,
        "date": "2024-03-05",
        "status": "pending",
    }
