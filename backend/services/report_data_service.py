from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session, sessionmaker

from config import settings as app_settings
from db.models import User
from db.queries import get_user, report_data_for_user
from services.exercise_service import calculate_calories_burned, calculate_points_burned
from services.report_data_update import CaloriesBurnedFn, PointsBurnedFn, ReportDataUpdateTask
from utils.datetime_utils import adjust_date_for_time_zone, utcnow

logger = logging.getLogger(__name__)


class ReportDataResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    date: date
    pounds: float
    net_calories: int
    net_points: float


@dataclass(frozen=True)
class ReportDataUpdateEntry:
    """Start date, result handle and scheduler job id of one user's update."""

    start_date: date
    future: Future | None
    job_id: str | None = None


def _entry_is_finished(entry: ReportDataUpdateEntry) -> bool:
    future = entry.future
    return future is None or future.done() or future.cancelled()


class ReportDataService:
    """
    Debounced scheduler for ReportData recomputation.

    Every change to a user's weight, food or exercise log asks for an update
    starting on the changed date. Updates are deferred by ``update_delay_seconds``
    so that a burst of edits collapses into one run. Each user has at most one
    scheduled or running update; a request reaching further back than the
    scheduled one replaces it, anything else is already covered.

    Updates run one at a time on the scheduler's single-thread ``updates``
    executor. An interval job on a separate executor prunes entries whose
    updates have finished.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        update_delay_seconds: float | None = None,
        cleanup_frequency_seconds: float | None = None,
        calories_burned: CaloriesBurnedFn = calculate_calories_burned,
        points_burned: PointsBurnedFn = calculate_points_burned,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session_factory = session_factory
        self.update_delay_seconds = (
            app_settings.update_delay_seconds if update_delay_seconds is None else max(float(update_delay_seconds), 0.0)
        )
        self.cleanup_frequency_seconds = (
            app_settings.cleanup_frequency_seconds
            if cleanup_frequency_seconds is None
            else max(float(cleanup_frequency_seconds), 0.001)
        )
        self.calories_burned = calories_burned
        self.points_burned = points_burned
        self.clock = clock

        self._lock = threading.Lock()
        self._scheduled_user_updates: dict[int, ReportDataUpdateEntry] = {}
        self._running_updates = 0
        self._closed = False
        self._scheduler = BackgroundScheduler(
            executors={
                "updates": ThreadPoolExecutor(1),
                "cleanup": ThreadPoolExecutor(1),
            },
            job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": None},
            timezone="UTC",
        )
        self._scheduler.add_job(
            self._cleanup,
            "interval",
            seconds=self.cleanup_frequency_seconds,
            id="reportdata-cleanup",
            executor="cleanup",
        )
        self._scheduler.start()

    def find_by_user(self, db: Session, user_id: int) -> list[ReportDataResponse]:
        user = get_user(db, user_id)
        if user is None:
            return []
        return [ReportDataResponse.model_validate(row) for row in report_data_for_user(db, user.id)]

    def adjust_date_for_time_zone(self, value: date | datetime, tz_name: str | None) -> date:
        return adjust_date_for_time_zone(value, tz_name, now=self.clock())

    def update_user_from_date(self, user: User, value: date | datetime) -> Future | None:
        """
        Schedule a ReportData update for ``user`` from ``value`` through today.

        Returns the job handle, or ``None`` when an update already scheduled for
        the user starts on or before the requested date.
        """
        adjusted_date = self.adjust_date_for_time_zone(value, user.timezone)
        user_id = int(user.id)
        email = user.email

        with self._lock:
            if self._closed:
                raise RuntimeError("ReportData scheduler has been shut down")
            existing = self._scheduled_user_updates.get(user_id)
            if existing is not None:
                if _entry_is_finished(existing):
                    # Finished or cancelled update still in the map.
                    self._scheduled_user_updates.pop(user_id, None)
                elif existing.start_date > adjusted_date:
                    # Pending update is superseded by the wider new range.
                    cancelled = existing.future.cancel()
                    if cancelled:
                        self._remove_job(existing.job_id)
                    self._scheduled_user_updates.pop(user_id, None)
                    logger.info(
                        "Superseding ReportData update for user [%s] from [%s] with [%s] (cancelled=%s)",
                        email,
                        existing.start_date,
                        adjusted_date,
                        cancelled,
                    )
                else:
                    logger.info(
                        "ReportData update for user [%s] from [%s] already covered by pending update from [%s]",
                        email,
                        adjusted_date,
                        existing.start_date,
                    )
                    return None

            logger.info(
                "Scheduling a ReportData update for user [%s] from [%s] in %d milliseconds",
                email,
                adjusted_date,
                int(self.update_delay_seconds * 1000),
            )
            task = ReportDataUpdateTask(
                self.session_factory,
                user_id,
                adjusted_date,
                calories_burned=self.calories_burned,
                points_burned=self.points_burned,
                clock=self.clock,
            )
            future: Future = Future()
            job = self._scheduler.add_job(
                self._run_update,
                "date",
                run_date=datetime.now(timezone.utc) + timedelta(seconds=self.update_delay_seconds),
                args=[task, future],
                executor="updates",
                name=repr(task),
            )
            self._scheduled_user_updates[user_id] = ReportDataUpdateEntry(adjusted_date, future, job.id)
            return future

    def scheduled_start_date(self, user_id: int) -> date | None:
        with self._lock:
            entry = self._scheduled_user_updates.get(int(user_id))
            return entry.start_date if entry is not None else None

    def is_idle(self) -> bool:
        with self._lock:
            active = self._running_updates
            queued = len(self._scheduled_user_updates)
            logger.debug("%d active update jobs, %d scheduled user updates", active, queued)
            return active == 0 and queued == 0

    def wait_for_idle(self, timeout: float = 10.0, poll_interval: float = 0.05) -> bool:
        deadline = time.monotonic() + max(timeout, 0.0)
        while True:
            if self.is_idle():
                return True
            if time.monotonic() >= deadline:
                return False
            time.sleep(poll_interval)

    def prune_finished_updates(self) -> int:
        with self._lock:
            finished = [
                user_id
                for user_id, entry in self._scheduled_user_updates.items()
                if _entry_is_finished(entry)
            ]
            for user_id in finished:
                del self._scheduled_user_updates[user_id]
        if finished:
            logger.debug("Pruned %d finished ReportData update entries", len(finished))
        return len(finished)

    def shutdown(self, wait: bool = False) -> None:
        """Stop the scheduler and cancel updates that have not started."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for entry in self._scheduled_user_updates.values():
                if entry.future is not None and entry.future.cancel():
                    self._remove_job(entry.job_id)
        self._scheduler.shutdown(wait=wait)
        self.prune_finished_updates()

    def _run_update(self, task: ReportDataUpdateTask, future: Future) -> None:
        # A superseded update may already be queued on the executor.
        if not future.set_running_or_notify_cancel():
            return
        with self._lock:
            self._running_updates += 1
        try:
            result = task()
        except Exception as exc:
            logger.exception("ReportData update %r failed", task)
            with self._lock:
                self._running_updates -= 1
            future.set_exception(exc)
        else:
            with self._lock:
                self._running_updates -= 1
            future.set_result(result)

    def _cleanup(self) -> None:
        try:
            self.prune_finished_updates()
        except Exception:
            logger.exception("ReportData cleanup pass failed")

    def _remove_job(self, job_id: str | None) -> None:
        if job_id is None:
            return
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            # Already fired and handed to the executor.
            pass
