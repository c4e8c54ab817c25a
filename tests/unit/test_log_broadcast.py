import threading
from datetime import datetime, timedelta, timezone

from azadi_cms.db.schemas import LogStatus
from azadi_cms.services.log_broadcast import LOG_CAPACITY, LogBroadcast


def _clock():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    ticks = iter(range(10_000))
    return lambda: start + timedelta(seconds=next(ticks))


def test_buffer_is_capped_newest_first():
    log = LogBroadcast(clock=_clock())
    for i in range(60):
        log.append("System", LogStatus.SUCCESS, f"entry {i}")

    entries = log.snapshot()

    assert len(entries) == LOG_CAPACITY == 50
    assert entries[0].message == "entry 59"
    assert entries[-1].message == "entry 10"
    assert len({e.id for e in entries}) == 50


def test_subscriber_gets_snapshot_then_every_append():
    log = LogBroadcast()
    log.append("Storage", LogStatus.SUCCESS, "before")
    seen = []

    unsubscribe = log.subscribe(lambda entries: seen.append([e.message for e in entries]))
    log.append("Storage", LogStatus.WARNING, "after")

    assert seen == [["before"], ["after", "before"]]
    unsubscribe()
    log.append("Storage", LogStatus.SUCCESS, "ignored")
    assert len(seen) == 2


def test_all_subscribers_see_the_same_snapshot():
    log = LogBroadcast()
    first, second = [], []
    log.subscribe(lambda entries: first.append(entries))
    log.subscribe(lambda entries: second.append(entries))

    log.append("System", LogStatus.RUNNING, "go")

    assert first[-1] == second[-1]
    assert log.subscriber_count() == 2


def test_failing_subscriber_does_not_block_others():
    log = LogBroadcast()
    received = []

    def broken(_entries):
        raise RuntimeError("boom")

    log.subscribe(broken)
    log.subscribe(lambda entries: received.append(len(entries)))
    entry = log.append("System", LogStatus.ERROR, "still delivered")

    assert entry.status == LogStatus.ERROR
    assert received == [0, 1]


def test_unsubscribe_is_idempotent():
    log = LogBroadcast()
    unsubscribe = log.subscribe(lambda entries: None)
    unsubscribe()
    unsubscribe()
    assert log.subscriber_count() == 0


def test_concurrent_appends_keep_total_order():
    log = LogBroadcast(capacity=500)
    snapshots = []
    log.subscribe(lambda entries: snapshots.append([e.id for e in entries]))

    def writer(n):
        for i in range(50):
            log.append("Image Scan", LogStatus.SUCCESS, f"{n}-{i}")

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(log) == 200
    # every delivered snapshot extends the previous one by exactly one entry
    for previous, current in zip(snapshots, snapshots[1:]):
        assert current[1:] == previous


def test_serialized_size_grows_with_entries():
    log = LogBroadcast()
    assert log.serialized_size() == 0
    log.append("Storage", LogStatus.SUCCESS, "x")
    assert log.serialized_size() > 0


def test_unsubscribing_one_keeps_the_other():
    log = LogBroadcast()
    first, second = [], []
    drop_first = log.subscribe(lambda entries: first.append(entries[0].message if entries else None))
    log.subscribe(lambda entries: second.append(entries[0].message if entries else None))

    log.append("System", LogStatus.RUNNING, "one")
    drop_first()
    log.append("System", LogStatus.SUCCESS, "two")

    assert first == [None, "one"]
    assert second == [None, "one", "two"]
