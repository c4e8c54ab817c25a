"""
Document store client construction.

Builds the process-wide document client from environment configuration and
exposes it as a FastAPI dependency. ``DOCUMENT_STORE_PROVIDER=memory`` swaps
in the in-process tree (local development, tests).
"""
import logging
from typing import Optional

from azadi_cms.db.document_client import (
    BaseDocumentClient,
    DocumentStoreConfig,
    HttpDocumentClient,
    InMemoryDocumentClient,
)

logger = logging.getLogger(__name__)

_document_client: Optional[BaseDocumentClient] = None


def build_document_client(config: Optional[DocumentStoreConfig] = None) -> BaseDocumentClient:
    config = config or DocumentStoreConfig.from_env()
    if config.provider == "memory":
        logger.info("document_store: using in-memory provider")
        return InMemoryDocumentClient()
    logger.info("document_store: using %s (timeout=%ss)", config.base_url, config.timeout_seconds)
    return HttpDocumentClient(config)


def get_document_client() -> BaseDocumentClient:
    global _document_client
    if _document_client is None:
        _document_client = build_document_client()
    return _document_client


def reset_document_client_for_tests() -> None:  # pragma: no cover - used in tests
    global _document_client
    if _document_client is not None:
        _document_client.close()
    _document_client = None
