"""
Keyed document store clients.

The store is a remote JSON tree addressed by slash-delimited paths
(``leaders/<id>``). Every node is reached over plain HTTP:

- ``GET    <base>/<path>.json``  -> value or ``null``
- ``PUT    <base>/<path>.json``  -> replace the node
- ``PATCH  <base>/<path>.json``  -> shallow-merge top-level fields
- ``DELETE <base>/<path>.json``  -> remove the node

Clients know nothing about record types. ``HttpDocumentClient`` talks to the
remote store; ``InMemoryDocumentClient`` implements the same path semantics
for local development and tests.
"""
from __future__ import annotations

import asyncio
import copy
import functools
import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from azadi_cms.db.errors import StoreTransportError
from azadi_cms.db.store_values import StoreValue, classify
from azadi_cms.utils.env import env_float, env_int, env_str

logger = logging.getLogger(__name__)

_CONNECT_TIMEOUT = 3
_INVALID_KEY_CHARS = re.compile(r"[.$#\[\]]")


def is_addressable_key(key: str) -> bool:
    return bool(key) and "/" not in key and not _INVALID_KEY_CHARS.search(key)


def normalize_path(path: str) -> str:
    """Strip surrounding slashes and reject keys the store cannot address."""
    segments = [segment for segment in (path or "").strip("/").split("/")]
    if not segments or any(not segment for segment in segments):
        raise ValueError(f"Invalid document path: {path!r}")
    for segment in segments:
        if _INVALID_KEY_CHARS.search(segment):
            raise ValueError(f"Invalid key {segment!r} in document path {path!r}")
    return "/".join(segments)


@dataclass(frozen=True)
class DocumentStoreConfig:
    provider: str = "http"
    base_url: str = "http://localhost:9000"
    auth_token: Optional[str] = None
    timeout_seconds: float = 15.0
    max_workers: int = 8

    @classmethod
    def from_env(cls) -> "DocumentStoreConfig":
        provider = (env_str("DOCUMENT_STORE_PROVIDER") or "http").lower()
        if provider not in {"http", "memory"}:
            logger.warning("Unknown DOCUMENT_STORE_PROVIDER '%s'; using http.", provider)
            provider = "http"
        return cls(
            provider=provider,
            base_url=env_str("DOCUMENT_STORE_URL", "http://localhost:9000"),
            auth_token=env_str("DOCUMENT_STORE_AUTH"),
            timeout_seconds=env_float("DOCUMENT_STORE_TIMEOUT_SECONDS", 15.0, minimum=0.1),
            max_workers=env_int("DOCUMENT_STORE_MAX_WORKERS", 8, minimum=1),
        )


class BaseDocumentClient:
    """Asynchronous contract shared by all document clients."""

    async def fetch(self, path: str) -> Any:
        raise NotImplementedError

    async def put(self, path: str, value: Any) -> None:
        raise NotImplementedError

    async def patch(self, path: str, partial: Dict[str, Any]) -> None:
        raise NotImplementedError

    async def delete(self, path: str) -> None:
        raise NotImplementedError

    async def fetch_value(self, path: str) -> StoreValue:
        """Fetch and classify the node at ``path``."""
        return classify(await self.fetch(path))

    def close(self) -> None:
        pass


class HttpDocumentClient(BaseDocumentClient):
    """REST client for the remote store.

    ``requests`` is blocking, so each call runs on a bounded thread pool and
    the event loop only awaits the future. Every call carries a timeout.
    """

    def __init__(
        self,
        config: Optional[DocumentStoreConfig] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config or DocumentStoreConfig.from_env()
        self.base_url = self.config.base_url.rstrip("/")
        self._session = session or requests.Session()
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="document-store",
        )

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{normalize_path(path)}.json"

    def _params(self) -> Dict[str, str]:
        return {"auth": self.config.auth_token} if self.config.auth_token else {}

    def _request(self, method: str, path: str, payload: Any = None) -> Any:
        url = self._url(path)
        kwargs: Dict[str, Any] = {
            "params": self._params(),
            "timeout": (_CONNECT_TIMEOUT, self.config.timeout_seconds),
        }
        if method in {"PUT", "PATCH"}:
            kwargs["json"] = payload
        try:
            response = self._session.request(method, url, **kwargs)
        except requests.RequestException as exc:
            logger.warning("document_store %s %s failed: %s", method, path, exc)
            raise StoreTransportError(path, str(exc)) from exc
        if response.status_code >= 400:
            logger.warning("document_store %s %s returned %s", method, path, response.status_code)
            raise StoreTransportError(path, response.reason or "error response", response.status_code)
        if method != "GET":
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise StoreTransportError(path, f"invalid JSON body: {exc}", response.status_code) from exc

    async def _call(self, method: str, path: str, payload: Any = None) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor,
            functools.partial(self._request, method, path, payload),
        )

    async def fetch(self, path: str) -> Any:
        return await self._call("GET", path)

    async def put(self, path: str, value: Any) -> None:
        await self._call("PUT", path, value)

    async def patch(self, path: str, partial: Dict[str, Any]) -> None:
        await self._call("PATCH", path, partial)

    async def delete(self, path: str) -> None:
        await self._call("DELETE", path)

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        self._session.close()


class InMemoryDocumentClient(BaseDocumentClient):
    """Process-local JSON tree with the remote store's path semantics.

    Writing ``None`` removes a node, empty maps are pruned, and a sequence
    that receives a keyed child is converted to a map, as the remote store
    does.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._root: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._lock = threading.Lock()
        self.write_count = 0

    @staticmethod
    def _as_map(node: Any) -> Dict[str, Any]:
        if isinstance(node, dict):
            return node
        if isinstance(node, list):
            return {str(i): item for i, item in enumerate(node) if item is not None}
        return {}

    def _lookup(self, segments: List[str]) -> Any:
        node: Any = self._root
        for segment in segments:
            if isinstance(node, dict):
                node = node.get(segment)
            elif isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
                node = node[int(segment)]
            else:
                return None
            if node is None:
                return None
        return node

    def _parent_for_write(self, segments: List[str]) -> Dict[str, Any]:
        node = self._root
        for segment in segments[:-1]:
            child = self._as_map(node.get(segment))
            node[segment] = child
            node = child
        return node

    def _prune(self, segments: List[str]) -> None:
        for depth in range(len(segments) - 1, 0, -1):
            parent = self._lookup(segments[: depth - 1]) if depth > 1 else self._root
            key = segments[depth - 1]
            if isinstance(parent, dict) and parent.get(key) in ({}, []):
                del parent[key]

    def _set(self, segments: List[str], value: Any) -> None:
        if value is None or value == {} or value == []:
            parent = self._lookup(segments[:-1]) if len(segments) > 1 else self._root
            if isinstance(parent, list):
                parent = self._parent_for_write(segments)
            if isinstance(parent, dict):
                parent.pop(segments[-1], None)
            self._prune(segments)
            return
        parent = self._parent_for_write(segments)
        parent[segments[-1]] = copy.deepcopy(value)

    async def fetch(self, path: str) -> Any:
        segments = normalize_path(path).split("/")
        with self._lock:
            return copy.deepcopy(self._lookup(segments))

    async def put(self, path: str, value: Any) -> None:
        segments = normalize_path(path).split("/")
        with self._lock:
            self._set(segments, value)
            self.write_count += 1

    async def patch(self, path: str, partial: Dict[str, Any]) -> None:
        segments = normalize_path(path).split("/")
        with self._lock:
            for key, value in partial.items():
                self._set(segments + [key], value)
            self.write_count += 1

    async def delete(self, path: str) -> None:
        segments = normalize_path(path).split("/")
        with self._lock:
            self._set(segments, None)
            self.write_count += 1

    def dump(self) -> Dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._root)
