"""Run the maintenance automation once from the command line."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time

from azadi_cms.workers.maintenance import get_maintenance_engine


logger = logging.getLogger("azadi_cms.scripts.run_maintenance")

TASKS = {
    "images": lambda engine: engine.scan_images(),
    "translations": lambda engine: engine.backfill_translations(),
    "inventory": lambda engine: engine.take_inventory(),
}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Scan stored content and repair what can be repaired")
    parser.add_argument(
        "--task",
        choices=["all", *TASKS],
        default="all",
        help="Run one task instead of the full pass (default: all)",
    )
    return parser.parse_args(argv)


def print_log(engine) -> None:
    for entry in reversed(engine.log.snapshot()):
        print(f"[{entry.timestamp:%H:%M:%S}] {entry.task:<15} {entry.status.value:<8} {entry.message}")


def run(task: str) -> int:
    engine = get_maintenance_engine()
    run_started = time.perf_counter()
    try:
        if task == "all":
            report = asyncio.run(engine.run_all())
            failed = report.failed_tasks
        else:
            failed = []
            try:
                asyncio.run(TASKS[task](engine))
            except Exception as exc:
                print(f"Task {task} failed: {exc}", file=sys.stderr)
                failed = [task]
    finally:
        print_log(engine)
    logger.info(
        "Maintenance run finished",
        extra={"task": task, "failed": failed, "duration_seconds": round(time.perf_counter() - run_started, 3)},
    )
    return 1 if failed else 0


def main(argv: list[str] | None = None) -> int:
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args = parse_args(argv)
    return run(args.task)


if __name__ == "__main__":  # pragma: no cover - manual execution path
    sys.exit(main())
