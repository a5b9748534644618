from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timezone

from sqlalchemy.orm import Session, sessionmaker

from db.models import ReportData, User
from db.queries import (
    exercises_performed_on_date,
    foods_eaten_on_date,
    get_user,
    report_data_on_date,
    weight_most_recent_on_date,
)
from services.exercise_service import calculate_calories_burned, calculate_points_burned
from utils.datetime_utils import adjust_date_for_time_zone, iter_dates, utcnow

logger = logging.getLogger(__name__)

CaloriesBurnedFn = Callable[[float, int, float], int]
PointsBurnedFn = Callable[[float, int, float], float]


class ReportDataError(Exception):
    """Base error for report data recomputation."""


class NoWeightBaselineError(ReportDataError):
    def __init__(self, user_id: int, day: date) -> None:
        self.user_id = user_id
        self.day = day
        super().__init__(f"No weight recorded for user {user_id} on or before {day.isoformat()}")


def update_report_data_for_day(
    db: Session,
    user: User,
    day: date,
    calories_burned: CaloriesBurnedFn = calculate_calories_burned,
    points_burned: PointsBurnedFn = calculate_points_burned,
) -> ReportData:
    """Create or overwrite the user's ReportData row for one day. Does not commit."""
    weight = weight_most_recent_on_date(db, user.id, day)
    if weight is None:
        raise NoWeightBaselineError(user.id, day)

    net_calories = 0
    net_points = 0.0

    for food_eaten in foods_eaten_on_date(db, user.id, day):
        net_calories += food_eaten.calories
        net_points += food_eaten.points

    for performed in exercises_performed_on_date(db, user.id, day):
        met = performed.exercise.metabolic_equivalent
        net_calories -= calories_burned(met, performed.minutes, weight.pounds)
        net_points -= points_burned(met, performed.minutes, weight.pounds)

    report = report_data_on_date(db, user.id, day)
    if report is None:
        report = ReportData(
            user_id=user.id,
            date=day,
            pounds=weight.pounds,
            net_calories=net_calories,
            net_points=net_points,
        )
        db.add(report)
    else:
        report.pounds = weight.pounds
        report.net_calories = net_calories
        report.net_points = net_points
    db.flush()
    return report


class ReportDataUpdateTask:
    """
    Recompute a user's ReportData rows from a start date through today.

    Typically the range is just today. A longer range appears when a user comes
    back after some days away or edits a historic entry. Days are processed in
    order and committed one at a time, so a failure leaves every earlier day
    updated and stops the walk at the failing day.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        user_id: int,
        start_date: date,
        calories_burned: CaloriesBurnedFn = calculate_calories_burned,
        points_burned: PointsBurnedFn = calculate_points_burned,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session_factory = session_factory
        self.user_id = user_id
        self.start_date = start_date
        self.calories_burned = calories_burned
        self.points_burned = points_burned
        self.clock = clock

    def __repr__(self) -> str:
        return f"ReportDataUpdateTask(user_id={self.user_id}, start_date={self.start_date.isoformat()})"

    def __call__(self) -> list[date]:
        db = self.session_factory()
        try:
            user = get_user(db, self.user_id)
            if user is None:
                logger.warning("Skipping ReportData update for missing user %s", self.user_id)
                return []

            now = self.clock()
            today = adjust_date_for_time_zone(now, user.timezone, now=now)
            updated: list[date] = []
            for day in iter_dates(self.start_date, today):
                logger.debug("Creating or updating ReportData for user [%s] on [%s]", user.email, day)
                update_report_data_for_day(
                    db,
                    user,
                    day,
                    calories_burned=self.calories_burned,
                    points_burned=self.points_burned,
                )
                db.commit()
                updated.append(day)

            stamped = now.astimezone(timezone.utc) if now.tzinfo is not None else now
            user.last_updated_time = stamped.replace(tzinfo=None)
            db.commit()
            logger.info(
                "ReportData update complete for user [%s] from [%s] through [%s] (%d days)",
                user.email,
                self.start_date,
                today,
                len(updated),
            )
            return updated
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
