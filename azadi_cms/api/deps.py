"""
API dependency helpers.

Provides the shared repositories, the maintenance engine, the admin
credential check, and translation of store errors into HTTP errors.
"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from azadi_cms.db.errors import (
    InvalidRecordIdError,
    InvalidStatusTransition,
    InvalidStoredSettingsError,
    RecordNotFoundError,
    StoreTransportError,
)
from azadi_cms.db.repositories import ContentRepositories
from azadi_cms.workers.maintenance import MaintenanceEngine, get_maintenance_engine

logger = logging.getLogger(__name__)

_basic = HTTPBasic(auto_error=False)


def get_engine() -> MaintenanceEngine:
    return get_maintenance_engine()


def get_repositories(engine: MaintenanceEngine = Depends(get_engine)) -> ContentRepositories:
    # one set of repositories shared with the maintenance engine
    return engine.repositories


async def require_admin(
    credentials: Optional[HTTPBasicCredentials] = Depends(_basic),
    repositories: ContentRepositories = Depends(get_repositories),
) -> str:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin credentials required",
            headers={"WWW-Authenticate": "Basic"},
        )
    with store_errors():
        valid = await repositories.settings.verify_admin(credentials.username, credentials.password)
    if not valid:
        logger.info("admin_login_rejected user=%s", credentials.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return credentials.username


@contextmanager
def store_errors() -> Iterator[None]:
    """Map store exceptions raised inside the block to HTTP errors."""
    try:
        yield
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidRecordIdError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except InvalidStatusTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except InvalidStoredSettingsError as exc:
        logger.warning("Refusing to overwrite unreadable settings: %s", exc)
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except StoreTransportError as exc:
        logger.error("Document store unavailable: %s", exc)
        raise HTTPException(status_code=502, detail="Document store unavailable") from exc
