"""
Unit tests for the maintenance automation engine.
Runs against the in-memory store with a fake image probe and translator.
"""
import asyncio

import pytest

from azadi_cms.db.schemas import LogStatus
from azadi_cms.services.image_probe import BaseImageProbe
from azadi_cms.services.log_broadcast import LogBroadcast
from azadi_cms.services.text_service import BaseTextService, NoopTextService
from azadi_cms.workers.maintenance import (
    TASK_IMAGES,
    TASK_INTEGRITY,
    TASK_STORAGE,
    TASK_SYSTEM,
    MaintenanceConfig,
    MaintenanceEngine,
    RunOutcome,
    count_missing_translations,
)


class FakeProbe(BaseImageProbe):
    def __init__(self, broken=(), gate=None):
        self.broken = set(broken)
        self.gate = gate
        self.checked = []

    async def is_reachable(self, reference):
        if self.gate is not None:
            await self.gate.wait()
        self.checked.append(reference)
        return reference not in self.broken


class DictTranslator(BaseTextService):
    is_enabled = True

    def __init__(self, table):
        self.table = table
        self.calls = []

    async def translate(self, text, target_locale):
        self.calls.append((text, target_locale))
        return self.table.get(text, text)


@pytest.fixture
def config():
    return MaintenanceConfig(image_timeout_seconds=1, image_concurrency=4)


def _engine(repositories, config, *, translator=None, probe=None):
    return MaintenanceEngine(
        repositories,
        text_service=translator or DictTranslator({"Karim": "করিম"}),
        log=LogBroadcast(),
        probe=probe or FakeProbe(),
        config=config,
    )


def _messages(engine, task=None):
    return [e.message for e in engine.log.snapshot() if task is None or e.task == task]


@pytest.mark.asyncio
async def test_backfill_fills_missing_bengali_name(fake_store, repositories, config, leader_karim):
    await fake_store.put("leaders/L1", leader_karim)
    engine = _engine(repositories, config)

    report = await engine.run_all()

    assert report.outcome == RunOutcome.COMPLETED
    assert report.succeeded
    assert report.fixed_records == 1
    stored = await fake_store.fetch("leaders/L1")
    assert stored["name"] == {"en": "Karim", "bn": "করিম"}
    assert stored["designation"] == {"en": "President", "bn": "সভাপতি"}
    assert "Auto-translated/Fixed 1 profiles." in _messages(engine, TASK_INTEGRITY)

    newest = engine.log.snapshot()[0]
    assert newest.task == TASK_SYSTEM
    assert newest.status == LogStatus.SUCCESS
    assert not engine.is_running


@pytest.mark.asyncio
async def test_second_run_changes_nothing(fake_store, repositories, config, leader_karim):
    await fake_store.put("leaders/L1", leader_karim)
    engine = _engine(repositories, config)
    await engine.run_all()
    writes_after_first = fake_store.write_count

    report = await engine.run_all()

    assert report.fixed_records == 0
    assert fake_store.write_count == writes_after_first
    assert "All data fields appear consistent." in _messages(engine, TASK_INTEGRITY)


@pytest.mark.asyncio
async def test_fields_with_both_or_neither_side_are_left_alone(fake_store, repositories, config):
    await fake_store.put(
        "leaders",
        {
            "L2": {"name": {"en": "", "bn": ""}, "designation": {"en": "VP", "bn": "সহ-সভাপতি"}, "order": 1},
        },
    )
    translator = DictTranslator({})
    engine = _engine(repositories, config, translator=translator)

    report = await engine.run_all()

    assert report.fixed_records == 0
    assert translator.calls == []


@pytest.mark.asyncio
async def test_bengali_only_field_is_translated_to_english(fake_store, repositories, config):
    await fake_store.put("leaders/L3", {"name": {"en": "", "bn": "করিম"}, "order": 1})
    engine = _engine(repositories, config, translator=DictTranslator({"করিম": "Karim"}))

    await engine.run_all()

    assert (await fake_store.fetch("leaders/L3"))["name"] == {"en": "Karim", "bn": "করিম"}


@pytest.mark.asyncio
async def test_unavailable_translator_writes_nothing(fake_store, repositories, config, leader_karim):
    await fake_store.put("leaders/L1", leader_karim)
    writes_before = fake_store.write_count
    engine = _engine(repositories, config, translator=NoopTextService())

    report = await engine.run_all()

    assert report.fixed_records == 0
    assert fake_store.write_count == writes_before
    assert (await fake_store.fetch("leaders/L1"))["name"]["bn"] == ""
    assert any("could not be translated (text service unavailable)" in m for m in _messages(engine))


@pytest.mark.asyncio
async def test_image_scan_reports_broken_references(fake_store, repositories, config):
    await fake_store.put(
        "gallery",
        {
            "g1": {"imageUrl": "https://img/ok.png", "caption": {"en": "a", "bn": "b"}},
            "g2": {"imageUrl": "https://img/missing.png", "caption": {"en": "a", "bn": "b"}},
        },
    )
    await fake_store.put("members/m1", {"name": {"en": "Rafiq", "bn": "রফিক"}, "image": "https://img/missing.png"})
    probe = FakeProbe(broken={"https://img/missing.png"})
    engine = _engine(repositories, config, probe=probe)

    report = await engine.run_all()

    assert report.broken_links == 2
    # duplicate references are probed once
    assert probe.checked.count("https://img/missing.png") == 1
    assert "https://img/ok.png" in probe.checked
    image_logs = _messages(engine, TASK_IMAGES)
    assert "Broken image detected in Gallery Item" in image_logs
    assert "Broken image detected in Member: Rafiq" in image_logs
    assert "Found 2 broken images." in image_logs
    assert engine.get_health().broken_links == 2


@pytest.mark.asyncio
async def test_seeded_collections_are_probed(repositories, config):
    seeded = [
        record.image_ref()
        for kind in ("leaders", "members", "gallery", "events")
        for record in repositories.collections()[kind].seed()
        if record.image_ref()
    ]
    probe = FakeProbe(broken=set(seeded))
    engine = _engine(repositories, config, probe=probe)

    report = await engine.run_all()

    assert seeded
    assert sorted(probe.checked) == sorted(set(seeded))
    assert report.broken_links == len(seeded)
    assert f"Found {len(seeded)} broken images." in _messages(engine, TASK_IMAGES)


@pytest.mark.asyncio
async def test_second_request_while_running_is_rejected(fake_store, repositories, config):
    await fake_store.put("events/ev1", {"title": {"en": "x", "bn": "y"}, "image": "https://img/e.png"})
    gate = asyncio.Event()
    engine = _engine(repositories, config, probe=FakeProbe(gate=gate))

    first = asyncio.create_task(engine.run_all())
    for _ in range(20):
        if engine.is_running:
            break
        await asyncio.sleep(0)
    second = await engine.run_all()
    gate.set()
    first_report = await first

    assert second.outcome == RunOutcome.ALREADY_RUNNING
    assert first_report.outcome == RunOutcome.COMPLETED
    assert sum(1 for m in _messages(engine, TASK_SYSTEM) if m.startswith("Starting")) == 1
    assert not engine.is_running


@pytest.mark.asyncio
async def test_start_background_runs_once(repositories, config):
    engine = _engine(repositories, config)

    assert engine.start_background() == RunOutcome.STARTED
    assert engine.start_background() == RunOutcome.ALREADY_RUNNING
    await engine.wait_idle()

    assert not engine.is_running
    assert engine.last_report is not None
    assert engine.last_report.succeeded


@pytest.mark.asyncio
async def test_failing_task_does_not_stop_the_others(fake_store, repositories, config, leader_karim):
    await fake_store.put("leaders/L1", leader_karim)
    await fake_store.put("gallery/g1", {"imageUrl": "https://img/bad.png"})
    fake_store.fail_reads.add("leaders")
    probe = FakeProbe(broken={"https://img/bad.png"})
    engine = _engine(repositories, config, probe=probe)

    report = await engine.run_all()

    assert report.failed_tasks == [TASK_INTEGRITY]
    assert report.broken_links == 1
    assert any(m.startswith("Data Integrity failed") for m in _messages(engine, TASK_INTEGRITY))
    newest = engine.log.snapshot()[0]
    assert newest.task == TASK_SYSTEM
    assert newest.status == LogStatus.ERROR
    assert engine.get_health().database_status == "error"
    assert not engine.is_running


@pytest.mark.asyncio
async def test_partial_batch_failure_is_logged(fake_store, repositories, config, leader_karim):
    await fake_store.put("leaders/L1", leader_karim)
    await fake_store.put("leaders/L2", {**leader_karim, "id": "L2"})
    fake_store.fail_writes.add("leaders/L2")
    engine = _engine(repositories, config)

    report = await engine.run_all()

    assert report.fixed_records == 1
    assert (await fake_store.fetch("leaders/L1"))["name"]["bn"] == "করিম"
    assert any(m.startswith("Could not save translated profile L2") for m in _messages(engine, TASK_INTEGRITY))


@pytest.mark.asyncio
async def test_health_before_and_after_scan(fake_store, repositories, config):
    engine = _engine(repositories, config)
    before = engine.get_health()
    assert before.database_status == "unknown"
    assert before.last_scan is None
    assert before.broken_links == 0

    await fake_store.put("events/ev2", {"title": {"en": "Rally", "bn": ""}})
    await engine.run_all()
    after = engine.get_health()

    assert after.database_status == "healthy"
    assert after.missing_translations == 1
    assert after.storage_usage > 0
    assert after.last_scan is not None
    wire = after.to_wire()
    assert set(wire) >= {"databaseStatus", "brokenLinks", "missingTranslations", "storageUsage", "lastScan"}


@pytest.mark.asyncio
async def test_storage_warning_above_threshold(fake_store, repositories):
    await fake_store.put("events/ev2", {"title": {"en": "Rally", "bn": "র‍্যালি"}, "description": {"en": "x" * 500}})
    config = MaintenanceConfig(storage_quota_bytes=1000, storage_warn_percent=10)
    engine = _engine(repositories, config)

    await engine.run_all()

    storage = _messages(engine, TASK_STORAGE)
    assert any(m.startswith("Storage is") and "Recommend clearing old records." in m for m in storage)


@pytest.mark.asyncio
async def test_storage_healthy_below_threshold(repositories, config):
    engine = _engine(repositories, config)
    await engine.run_all()
    assert any(m.startswith("Storage usage is healthy") for m in _messages(engine, TASK_STORAGE))


def test_count_missing_translations(repositories):
    events = repositories.events.seed()
    assert count_missing_translations(events) == 0
    events[0].title.bn = ""
    assert count_missing_translations(events) == 1


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("AUTOMATION_IMAGE_CONCURRENCY", "3")
    monkeypatch.setenv("AUTOMATION_STORAGE_WARN_PERCENT", "-1")
    config = MaintenanceConfig.from_env()
    assert config.image_concurrency == 3
    assert config.storage_warn_percent == 80.0
    assert config.storage_quota_bytes == 5 * 1024 * 1024
