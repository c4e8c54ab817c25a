"""Image reachability checks for stored image references.

A reference is either an http(s) URL or an inline ``data:image/...`` URI.
URLs are probed with ``HEAD`` (falling back to a streamed ``GET`` for servers
that refuse ``HEAD``); inline images are checked by decoding their payload.
"""
from __future__ import annotations

import asyncio
import base64
import binascii
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional
from urllib.parse import unquote, urlparse

import requests

logger = logging.getLogger(__name__)

_CONNECT_TIMEOUT = 3


def inline_image_is_valid(reference: str) -> bool:
    header, sep, payload = reference.partition(",")
    if not sep or not header.lower().startswith("data:image/"):
        return False
    if header.lower().endswith(";base64"):
        try:
            return bool(base64.b64decode(payload, validate=True))
        except (binascii.Error, ValueError):
            return False
    return bool(unquote(payload).strip())


class BaseImageProbe:
    async def is_reachable(self, reference: str) -> bool:
        raise NotImplementedError

    def close(self) -> None:
        pass


class HttpImageProbe(BaseImageProbe):
    def __init__(
        self,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
        max_workers: int = 8,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self._session = session or requests.Session()
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="image-probe")

    @staticmethod
    def _looks_like_image(response: requests.Response) -> bool:
        if response.status_code >= 400:
            return False
        content_type = response.headers.get("Content-Type", "")
        return not content_type or content_type.lower().startswith(("image/", "application/octet-stream"))

    def _probe_url(self, url: str) -> bool:
        timeout = (_CONNECT_TIMEOUT, self.timeout_seconds)
        try:
            response = self._session.head(url, timeout=timeout, allow_redirects=True)
            if response.status_code in (405, 501):
                response = self._session.get(url, timeout=timeout, allow_redirects=True, stream=True)
                response.close()
            return self._looks_like_image(response)
        except requests.RequestException as exc:
            logger.debug("Image probe for %s failed: %s", url, exc)
            return False

    async def is_reachable(self, reference: str) -> bool:
        reference = (reference or "").strip()
        if not reference:
            return False
        if reference.lower().startswith("data:"):
            return inline_image_is_valid(reference)
        if urlparse(reference).scheme not in {"http", "https"}:
            return False
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(self._probe_url, reference))

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        self._session.close()
