"""APScheduler wrapper running the scan pipeline periodically."""

from __future__ import annotations

from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ..config import ScheduleConfig, ScheduleType
from ..logging_conf import get_logger

SCAN_JOB_ID = "scan"


class APSchedulerAdapter:
    """Own a BackgroundScheduler holding the single ``scan`` job."""

    def __init__(self, scheduler: BackgroundScheduler | None = None) -> None:
        self.scheduler = scheduler or BackgroundScheduler()
        self.logger = get_logger("scheduler")
        self.started = False

    def start(self) -> None:
        if not self.started:
            self.scheduler.start()
            self.started = True
            self.logger.info("apscheduler_started")

    def shutdown(self) -> None:
        if self.started:
            self.scheduler.shutdown(wait=False)
            self.started = False
            self.logger.info("apscheduler_stopped")

    def schedule_scan(self, schedule: ScheduleConfig, callback: Callable[[], object]) -> None:
        # One instance at a time: the state document has a single writer.
        self.scheduler.add_job(
            callback,
            trigger=self.build_trigger(schedule),
            id=SCAN_JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.logger.info("job_scheduled", schedule=schedule.model_dump(mode="json"))

    @staticmethod
    def build_trigger(schedule: ScheduleConfig):
        if schedule.type is ScheduleType.CRON:
            return CronTrigger.from_crontab(str(schedule.value))
        if isinstance(schedule.value, dict):
            return IntervalTrigger(**schedule.value)
        return IntervalTrigger(seconds=float(schedule.value))

    def list_jobs(self) -> list[dict]:
        return [
            {
                "id": job.id,
                "next_run_time": getattr(job, "next_run_time", None),
                "trigger": str(job.trigger),
            }
            for job in self.scheduler.get_jobs()
        ]


__all__ = ["APSchedulerAdapter", "SCAN_JOB_ID"]
