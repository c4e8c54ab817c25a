"""
Singleton settings record.

The stored node is merged onto the built-in defaults on every read: fields
the stored record lacks are filled from defaults, fields it has win, and the
social-link map is merged key by key so a stored record without ``twitter``
keeps the default ``facebook``/``youtube`` links. Writes always send the
full merged object.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from azadi_cms.db.document_client import BaseDocumentClient
from azadi_cms.db.errors import InvalidStoredSettingsError, StoreShapeError, StoreTransportError
from azadi_cms.db.schemas import AppSettings
from azadi_cms.db.seeds import seed_settings
from azadi_cms.utils.credentials import hash_password, verify_password

logger = logging.getLogger(__name__)

SETTINGS_PATH = "app_settings"
NESTED_MAP_FIELDS = ("socialLinks",)


def merge_settings(defaults: Dict[str, Any], stored: Any) -> Dict[str, Any]:
    """Overlay ``stored`` onto ``defaults``.

    Top-level stored fields replace defaults unless they are null. Nested map
    fields are merged one key deeper instead of being replaced wholesale.
    """
    merged = dict(defaults)
    if not isinstance(stored, dict):
        return merged
    for key, value in stored.items():
        if value is None:
            continue
        if key in NESTED_MAP_FIELDS:
            base = defaults.get(key)
            nested = dict(base) if isinstance(base, dict) else {}
            if isinstance(value, dict):
                nested.update({k: v for k, v in value.items() if v is not None})
            merged[key] = nested
            continue
        merged[key] = value
    return merged


@dataclass
class SettingsResult:
    settings: AppSettings
    source: str = "store"
    error: Optional[str] = None
    # fields replaced by defaults because their stored value failed validation
    repaired: Tuple[str, ...] = ()

    @property
    def degraded(self) -> bool:
        return self.error is not None


def _field_names() -> Dict[str, str]:
    names: Dict[str, str] = {}
    for name, info in AppSettings.model_fields.items():
        names[name] = name
        if info.alias:
            names[info.alias] = name
    return names


def _covers(changes: Dict[str, Any], repaired_field: str) -> bool:
    top, _, nested = repaired_field.partition(".")
    if top not in changes:
        return False
    if not nested:
        return True
    value = changes[top]
    return isinstance(value, dict) and value.get(nested) is not None


class SettingsRepository:
    def __init__(
        self,
        client: BaseDocumentClient,
        defaults: Callable[[], Dict[str, Any]] = seed_settings,
    ) -> None:
        self.client = client
        self._defaults = defaults

    def defaults(self) -> AppSettings:
        return AppSettings.model_validate(self._defaults())

    def _validate(self, merged: Dict[str, Any]) -> Tuple[AppSettings, List[str]]:
        """Validate a merged record, falling back to defaults field by field.

        Returns the settings and the fields that had to be replaced.
        """
        try:
            return AppSettings.model_validate(merged), []
        except ValidationError as exc:
            errors = exc.errors()

        defaults = self._defaults()
        names = _field_names()
        repaired = dict(merged)
        fields: List[str] = []
        for error in errors:
            loc = error.get("loc") or ()
            if not loc:
                continue
            key = loc[0]
            nested_key = loc[1] if len(loc) > 1 else None
            if key in NESTED_MAP_FIELDS and isinstance(nested_key, str) and isinstance(repaired.get(key), dict):
                nested = dict(repaired[key])
                base = defaults.get(key) or {}
                if nested_key in base:
                    nested[nested_key] = base[nested_key]
                else:
                    nested.pop(nested_key, None)
                repaired[key] = nested
                field = f"{names.get(key, key)}.{nested_key}"
            else:
                if key in defaults:
                    repaired[key] = defaults[key]
                else:
                    repaired.pop(key, None)
                field = names.get(key, str(key))
            if field not in fields:
                fields.append(field)
        logger.warning("Stored settings field(s) %s failed validation; using defaults for them", ", ".join(fields))
        try:
            return AppSettings.model_validate(repaired), fields
        except ValidationError as exc:
            logger.warning("Stored settings could not be repaired; using defaults: %s", exc)
            return self.defaults(), list(AppSettings.model_fields)

    async def load(self) -> SettingsResult:
        try:
            stored = await self.client.fetch(SETTINGS_PATH)
        except StoreTransportError as exc:
            logger.warning("Reading settings failed; serving defaults as fallback: %s", exc)
            return SettingsResult(settings=self.defaults(), source="fallback", error=str(exc))
        if stored is None:
            return SettingsResult(settings=self.defaults(), source="seed")
        if not isinstance(stored, dict):
            logger.warning("%s; using defaults", StoreShapeError(SETTINGS_PATH, type(stored).__name__))
        settings, repaired = self._validate(merge_settings(self._defaults(), stored))
        if not repaired:
            return SettingsResult(settings=settings)
        error = str(InvalidStoredSettingsError(SETTINGS_PATH, repaired))
        return SettingsResult(settings=settings, error=error, repaired=tuple(repaired))

    async def get(self) -> AppSettings:
        return (await self.load()).settings

    async def update(self, settings: AppSettings) -> AppSettings:
        """Persist the full settings object.

        Callers must start from ``get()``/``load()``, change what they need and
        pass the whole object back.
        """
        merged, _ = self._validate(merge_settings(self._defaults(), settings.to_wire()))
        await self.client.put(SETTINGS_PATH, merged.to_wire())
        return merged

    async def _load_for_write(self, changes: Dict[str, Any]) -> AppSettings:
        result = await self.load()
        if result.source == "fallback":
            # never write defaults over settings that exist but could not be read
            raise StoreTransportError(SETTINGS_PATH, result.error or "settings unavailable")
        untouched = [field for field in result.repaired if not _covers(changes, field)]
        if untouched:
            raise InvalidStoredSettingsError(SETTINGS_PATH, untouched)
        return result.settings

    async def apply(self, changes: Dict[str, Any]) -> AppSettings:
        """get → mutate → update for a handful of attributes.

        ``social_links`` may name only some links; the rest keep their
        current values.
        """
        current = await self._load_for_write(changes)
        data = current.model_dump()
        for name, value in changes.items():
            if name == "social_links" and isinstance(value, dict):
                data[name].update({k: v for k, v in value.items() if v is not None})
            else:
                data[name] = value
        return await self.update(AppSettings.model_validate(data))

    async def verify_admin(self, username: str, password: str) -> bool:
        result = await self.load()
        if {"admin_user", "admin_pass_hash"} & set(result.repaired):
            logger.warning("Admin login refused: stored credential is unreadable")
            return False
        if username != result.settings.admin_user:
            return False
        return verify_password(password, result.settings.admin_pass_hash)

    async def change_admin_password(self, new_password: str) -> AppSettings:
        return await self.apply({"admin_pass_hash": hash_password(new_password)})
