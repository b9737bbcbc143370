"""Trigger policies deciding when the backup pipeline runs."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.date import DateTrigger

from backuplit.models import BackupJob, EventDebouncePolicy, IntervalPolicy
from backuplit.pipeline import BackupPipeline
from backuplit.watcher import ChangeWatcher

LOGGER = logging.getLogger(__name__)


def run_interval(
    pipeline: BackupPipeline,
    job: BackupJob,
    policy: IntervalPolicy,
    *,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Sleep ``policy.period``, back up, and repeat until a backup fails.

    Each run is a one-shot job dated one period after the previous backup
    finished, so attempts never overlap. The first failure shuts the scheduler
    down and is re-raised here; nothing is retried or rescheduled.
    """
    logger = logger or LOGGER
    scheduler = BlockingScheduler(executors={"default": ThreadPoolExecutor(max_workers=1)})
    failures: List[BaseException] = []

    def schedule_next() -> None:
        run_date = datetime.now(timezone.utc) + policy.period
        scheduler.add_job(
            fire,
            trigger=DateTrigger(run_date=run_date, timezone=timezone.utc),
            name="Interval Backup",
            max_instances=1,
        )
        logger.info("Next backup at %s", run_date.isoformat())

    def fire() -> None:
        logger.info("Interval backup triggered")
        try:
            pipeline.run_backup(job)
        except Exception as exc:
            failures.append(exc)
            scheduler.shutdown(wait=False)
            return
        schedule_next()

    schedule_next()
    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Interval backup trigger stopped")
        scheduler.shutdown()

    if failures:
        raise failures[0]


def run_event_debounce(
    pipeline: BackupPipeline,
    job: BackupJob,
    policy: EventDebouncePolicy,
    *,
    watcher: Optional[ChangeWatcher] = None,
    clock: Callable[[], float] = time.monotonic,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Back up when matching changes arrive, at most once per debounce window.

    This is a leading-edge rate limiter: the first matching batch after the
    window reopens fires, and batches inside the window are dropped, not queued.
    """
    logger = logger or LOGGER
    if watcher is None:
        watcher = ChangeWatcher(
            job.source_dir,
            policy.change_kinds,
            recursive=policy.recursive,
            logger=logger,
        )
    window = policy.debounce_window.total_seconds()

    with watcher:
        last_fired_at = clock()
        for batch in watcher.batches():
            trigger = next((event for event in batch if event.kinds & policy.change_kinds), None)
            if trigger is None:
                logger.debug("Ignoring %s unrelated change events", len(batch))
                continue

            if clock() - last_fired_at >= window:
                logger.info(
                    "Debounced backup triggered by %s %s",
                    "directory" if trigger.is_directory else "file",
                    trigger.path,
                )
                pipeline.run_backup(job)
                last_fired_at = clock()
            else:
                logger.info("Rate limit enforced, backup skipped")


def run(pipeline: BackupPipeline, job: BackupJob, *, logger: Optional[logging.Logger] = None) -> None:
    """Run the job's trigger policy until a fatal error surfaces."""
    logger = logger or LOGGER
    policy = job.trigger_policy

    if isinstance(policy, IntervalPolicy):
        logger.info("Starting interval-based backup trigger (every %s)", policy.period)
        run_interval(pipeline, job, policy, logger=logger)
    elif isinstance(policy, EventDebouncePolicy):
        logger.info(
            "Starting event-based backup trigger on %s (window %s)",
            ", ".join(policy.change_kinds.names()),
            policy.debounce_window,
        )
        run_event_debounce(pipeline, job, policy, logger=logger)
    else:
        raise TypeError(f"Unsupported trigger policy: {policy!r}")


__all__ = [
    "run",
    "run_event_debounce",
    "run_interval",
]
