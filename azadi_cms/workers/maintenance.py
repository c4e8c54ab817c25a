"""
Maintenance automation engine.

One run scans every collection for integrity problems and repairs what it
can:

- image scan: probes every stored image reference and reports broken ones
- translation backfill: fills the empty side of leader names/designations
- inventory: sizes stored state against a nominal quota and counts locale
  fields still missing a translation

The image scan and the backfill run concurrently; the inventory runs after
both. Progress goes to a ``LogBroadcast``. Only one run is active at a time;
a second request while running is answered with ``ALREADY_RUNNING`` and is
not queued.
"""
from __future__ import annotations

import asyncio
import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Dict, List, Optional, Sequence, Tuple

from azadi_cms.db.errors import StoreTransportError
from azadi_cms.db.repositories import ContentRepositories, ListResult
from azadi_cms.db.schemas import DatabaseStatus, LocalizedText, LogStatus, Record, SystemHealth
from azadi_cms.services.image_probe import BaseImageProbe, HttpImageProbe
from azadi_cms.services.log_broadcast import LogBroadcast
from azadi_cms.services.text_service import BaseTextService, get_text_service
from azadi_cms.utils.env import env_float, env_int

logger = logging.getLogger(__name__)

TASK_SYSTEM = "System"
TASK_IMAGES = "Image Scan"
TASK_INTEGRITY = "Data Integrity"
TASK_STORAGE = "Storage"

IMAGE_COLLECTIONS = ("leaders", "members", "gallery", "events")
LOCALIZED_COLLECTIONS = ("leaders", "members", "events", "gallery")
BACKFILL_FIELDS = ("name", "designation")


class RunOutcome(str, Enum):
    STARTED = "started"
    COMPLETED = "completed"
    ALREADY_RUNNING = "already_running"


@dataclass(frozen=True)
class MaintenanceConfig:
    image_timeout_seconds: float = 10.0
    image_concurrency: int = 8
    settle_seconds: float = 0.0
    storage_quota_bytes: int = 5 * 1024 * 1024
    storage_warn_percent: float = 80.0

    @classmethod
    def from_env(cls) -> "MaintenanceConfig":
        return cls(
            image_timeout_seconds=env_float("AUTOMATION_IMAGE_TIMEOUT_SECONDS", 10.0, minimum=0.1),
            image_concurrency=env_int("AUTOMATION_IMAGE_CONCURRENCY", 8, minimum=1),
            settle_seconds=env_float("AUTOMATION_SETTLE_SECONDS", 0.0, minimum=0.0),
            storage_quota_bytes=env_int("AUTOMATION_STORAGE_QUOTA_BYTES", 5 * 1024 * 1024, minimum=1),
            storage_warn_percent=env_float("AUTOMATION_STORAGE_WARN_PERCENT", 80.0, minimum=0.0),
        )


@dataclass
class RunReport:
    outcome: RunOutcome
    broken_links: int = 0
    fixed_records: int = 0
    missing_translations: int = 0
    storage_usage: float = 0.0
    failed_tasks: List[str] = field(default_factory=list)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def succeeded(self) -> bool:
        return self.outcome == RunOutcome.COMPLETED and not self.failed_tasks


@dataclass
class _Inventory:
    state_bytes: Dict[str, int]
    missing_translations: int
    database_status: DatabaseStatus


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _serialized_size(records: Sequence[Record]) -> int:
    payload = [record.to_wire() for record in records]
    return len(json.dumps(payload, ensure_ascii=False).encode("utf-8"))


def count_missing_translations(records: Sequence[Record]) -> int:
    missing = 0
    for record in records:
        for attr in record.localized_fields:
            text = getattr(record, attr, None)
            if isinstance(text, LocalizedText) and text.missing_locale() is not None:
                missing += 1
    return missing


class MaintenanceEngine:
    def __init__(
        self,
        repositories: ContentRepositories,
        text_service: BaseTextService,
        log: Optional[LogBroadcast] = None,
        probe: Optional[BaseImageProbe] = None,
        config: Optional[MaintenanceConfig] = None,
    ) -> None:
        self.repositories = repositories
        self.text_service = text_service
        self.log = log or LogBroadcast()
        self.config = config or MaintenanceConfig.from_env()
        self.probe = probe or HttpImageProbe(
            timeout_seconds=self.config.image_timeout_seconds,
            max_workers=self.config.image_concurrency,
        )
        self._state_lock = threading.Lock()
        self._running = False
        self._background: Optional[asyncio.Task] = None
        self.last_report: Optional[RunReport] = None

        self._broken_links = 0
        self._missing_translations = 0
        self._database_status: DatabaseStatus = "unknown"
        self._last_scan: Optional[datetime] = None
        self._state_bytes: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # run state
    # ------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        with self._state_lock:
            return self._running

    def _try_begin(self) -> bool:
        with self._state_lock:
            if self._running:
                return False
            self._running = True
            return True

    def _finish(self) -> None:
        with self._state_lock:
            self._running = False

    async def run_all(self) -> RunReport:
        """Run every maintenance task and return when the engine is idle again."""
        if not self._try_begin():
            logger.info("maintenance_run_rejected: already running")
            return RunReport(outcome=RunOutcome.ALREADY_RUNNING)
        return await self._run_claimed()

    def start_background(self) -> RunOutcome:
        """Schedule ``run_all`` on the running loop without waiting for it."""
        if not self._try_begin():
            logger.info("maintenance_run_rejected: already running")
            return RunOutcome.ALREADY_RUNNING
        task = asyncio.create_task(self._run_claimed())
        self._background = task
        task.add_done_callback(self._on_background_done)
        return RunOutcome.STARTED

    def _on_background_done(self, task: asyncio.Task) -> None:
        try:
            task.result()
        except asyncio.CancelledError:
            logger.warning("Background maintenance run was cancelled")
        except Exception as exc:
            logger.error("Background maintenance run failed: %s", exc)
        finally:
            if self._background is task:
                self._background = None

    async def wait_idle(self) -> None:
        task = self._background
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def _run_claimed(self) -> RunReport:
        report = RunReport(outcome=RunOutcome.COMPLETED, started_at=_utcnow())
        try:
            self.log.append(TASK_SYSTEM, LogStatus.RUNNING, "Starting full system scan...")
            broken, fixed, _ = await asyncio.gather(
                self._guard(TASK_IMAGES, self.scan_images(), report),
                self._guard(TASK_INTEGRITY, self.backfill_translations(), report),
                self._settle(),
            )
            report.broken_links = broken or 0
            report.fixed_records = fixed or 0

            inventory = await self._guard(TASK_STORAGE, self.take_inventory(), report)
            if inventory is not None:
                report.missing_translations = inventory.missing_translations
            report.storage_usage = self.storage_usage_percent()
            self._last_scan = _utcnow()

            if report.failed_tasks:
                self.log.append(
                    TASK_SYSTEM,
                    LogStatus.ERROR,
                    f"Automation failed: {', '.join(report.failed_tasks)} did not complete.",
                )
            else:
                self.log.append(TASK_SYSTEM, LogStatus.SUCCESS, "Automated maintenance completed successfully.")
        finally:
            report.finished_at = _utcnow()
            self.last_report = report
            self._finish()
        logger.info(
            "maintenance_run_finished",
            extra={
                "broken_links": report.broken_links,
                "fixed_records": report.fixed_records,
                "missing_translations": report.missing_translations,
                "failed_tasks": report.failed_tasks,
            },
        )
        return report

    async def _guard(self, task_name: str, work: Awaitable[Any], report: RunReport) -> Any:
        try:
            return await work
        except Exception as exc:
            logger.exception("Maintenance task %s failed", task_name)
            self.log.append(task_name, LogStatus.ERROR, f"{task_name} failed: {exc}")
            report.failed_tasks.append(task_name)
            return None

    async def _settle(self) -> None:
        if self.config.settle_seconds > 0:
            await asyncio.sleep(self.config.settle_seconds)

    # ------------------------------------------------------------------
    # tasks
    # ------------------------------------------------------------------

    async def _list_many(self, kinds: Sequence[str]) -> Dict[str, ListResult]:
        repos = self.repositories.collections()
        results = await asyncio.gather(*(repos[kind].list() for kind in kinds))
        return dict(zip(kinds, results))

    async def _probe(self, reference: str, semaphore: asyncio.Semaphore) -> bool:
        # the probe's own timeout is per socket operation; bound the whole check too
        limit = self.config.image_timeout_seconds * 2 + 5
        async with semaphore:
            try:
                return await asyncio.wait_for(self.probe.is_reachable(reference), timeout=limit)
            except asyncio.TimeoutError:
                return False

    async def scan_images(self) -> int:
        results = await self._list_many(IMAGE_COLLECTIONS)
        targets: List[Tuple[str, str]] = []
        skipped: List[str] = []
        for kind, result in results.items():
            if result.source == "fallback":
                skipped.append(kind)
                self.log.append(TASK_IMAGES, LogStatus.WARNING, f"Skipped {kind}: store unreachable ({result.error})")
                continue
            for record in result.records:
                reference = record.image_ref()
                if reference:
                    targets.append((reference, record.label()))

        semaphore = asyncio.Semaphore(self.config.image_concurrency)
        unique = sorted({reference for reference, _ in targets})
        verdicts = await asyncio.gather(*(self._probe(ref, semaphore) for ref in unique))
        reachable = dict(zip(unique, verdicts))

        broken = 0
        for reference, label in targets:
            if not reachable[reference]:
                broken += 1
                self.log.append(TASK_IMAGES, LogStatus.WARNING, f"Broken image detected in {label}")

        self._broken_links = broken
        if len(skipped) == len(IMAGE_COLLECTIONS):
            raise StoreTransportError(",".join(skipped), "no image collection could be read")
        if broken:
            self.log.append(TASK_IMAGES, LogStatus.ERROR, f"Found {broken} broken images.")
        elif skipped:
            self.log.append(
                TASK_IMAGES,
                LogStatus.WARNING,
                f"No broken images found, but {len(skipped)} collection(s) could not be checked.",
            )
        else:
            self.log.append(TASK_IMAGES, LogStatus.SUCCESS, "All images are valid and loadable.")
        return broken

    async def _backfill_record(self, record: Record, fields: Sequence[str]) -> Tuple[bool, int]:
        changed = False
        untranslated = 0
        for attr in fields:
            text = getattr(record, attr, None)
            if not isinstance(text, LocalizedText):
                continue
            target = text.missing_locale()
            if target is None:
                continue
            source = text.get("en" if target == "bn" else "bn").strip()
            translated = (await self.text_service.translate(source, target) or "").strip()
            if not translated or translated == source:
                untranslated += 1
                continue
            setattr(text, target, translated)
            changed = True
        return changed, untranslated

    async def backfill_translations(self) -> int:
        """Fill one-sided leader names/designations and save the fixed records.

        Fields with both sides empty or both populated are left alone, so a
        second run over the same data changes nothing.
        """
        repo = self.repositories.leaders
        result = await repo.list()
        if result.source == "fallback":
            raise StoreTransportError(repo.collection, result.error or "leaders unavailable")

        changed: List[Record] = []
        untranslated = 0
        for leader in result.records if result.source == "store" else []:
            was_changed, missed = await self._backfill_record(leader, BACKFILL_FIELDS)
            untranslated += missed
            if was_changed:
                changed.append(leader)

        written = await repo.save_many(changed)
        for record_id, error in written.failed.items():
            self.log.append(TASK_INTEGRITY, LogStatus.WARNING, f"Could not save translated profile {record_id}: {error}")
        if untranslated:
            reason = "" if self.text_service.is_enabled else " (text service unavailable)"
            self.log.append(
                TASK_INTEGRITY,
                LogStatus.WARNING,
                f"{untranslated} field(s) could not be translated{reason}.",
            )

        fixed = len(written.succeeded)
        if fixed:
            self.log.append(TASK_INTEGRITY, LogStatus.SUCCESS, f"Auto-translated/Fixed {fixed} profiles.")
        else:
            self.log.append(TASK_INTEGRITY, LogStatus.SUCCESS, "All data fields appear consistent.")
        return fixed

    async def take_inventory(self) -> _Inventory:
        kinds = tuple(self.repositories.collections())
        results = await self._list_many(kinds)
        settings = await self.repositories.settings.load()

        state_bytes = dict(self._state_bytes)
        degraded = settings.degraded
        warned = False
        for kind, result in results.items():
            if result.source == "fallback":
                degraded = True
                continue
            warned = warned or bool(result.warnings)
            state_bytes[kind] = _serialized_size(result.records) if result.source == "store" else 0
        if not settings.degraded:
            state_bytes["app_settings"] = (
                len(json.dumps(settings.settings.to_wire(), ensure_ascii=False).encode("utf-8"))
                if settings.source == "store"
                else 0
            )

        missing = sum(
            count_missing_translations(results[kind].records)
            for kind in LOCALIZED_COLLECTIONS
            if results[kind].source == "store"
        )
        status: DatabaseStatus = "error" if degraded else ("warning" if warned else "healthy")
        inventory = _Inventory(state_bytes=state_bytes, missing_translations=missing, database_status=status)

        self._state_bytes = state_bytes
        self._missing_translations = missing
        self._database_status = status

        percent = self.storage_usage_percent()
        if percent > self.config.storage_warn_percent:
            self.log.append(
                TASK_STORAGE,
                LogStatus.WARNING,
                f"Storage is {percent:.1f}% full. Recommend clearing old records.",
            )
        else:
            self.log.append(TASK_STORAGE, LogStatus.SUCCESS, f"Storage usage is healthy ({percent:.1f}%).")
        if missing:
            self.log.append(
                TASK_INTEGRITY,
                LogStatus.WARNING,
                f"{missing} localized field(s) still missing a translation.",
            )
        if degraded:
            self.log.append(TASK_STORAGE, LogStatus.ERROR, "Some collections could not be read from the store.")
        return inventory

    # ------------------------------------------------------------------
    # health
    # ------------------------------------------------------------------

    def storage_usage_percent(self) -> float:
        used = sum(self._state_bytes.values()) + self.log.serialized_size()
        return round(used / self.config.storage_quota_bytes * 100, 2)

    def get_health(self) -> SystemHealth:
        """Snapshot of the last scan; recomputes only the storage estimate."""
        return SystemHealth(
            database_status=self._database_status,
            broken_links=self._broken_links,
            missing_translations=self._missing_translations,
            storage_usage=self.storage_usage_percent(),
            last_scan=self._last_scan,
        )


_maintenance_engine: Optional[MaintenanceEngine] = None


def get_maintenance_engine() -> MaintenanceEngine:
    global _maintenance_engine
    if _maintenance_engine is None:
        from azadi_cms.db.database import get_document_client
        from azadi_cms.db.repositories import build_repositories

        _maintenance_engine = MaintenanceEngine(
            repositories=build_repositories(get_document_client()),
            text_service=get_text_service(),
        )
    return _maintenance_engine


def reset_maintenance_engine_for_tests() -> None:  # pragma: no cover - used in tests
    global _maintenance_engine
    if _maintenance_engine is not None:
        _maintenance_engine.probe.close()
    _maintenance_engine = None


async def drain_maintenance_engine() -> None:
    if _maintenance_engine is not None:
        await _maintenance_engine.wait_idle()
