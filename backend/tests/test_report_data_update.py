from __future__ import annotations

import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy.orm import sessionmaker


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from db.database import Base, build_engine  # noqa: E402
from db.models import Exercise, ExercisePerformed, Food, FoodEaten, ReportData, User, Weight  # noqa: E402
from services.exercise_service import calculate_calories_burned  # noqa: E402
from services.report_data_update import NoWeightBaselineError, ReportDataUpdateTask  # noqa: E402


# 2015-03-01 01:00 UTC is still 2015-02-28 in New York.
FIXED_NOW = datetime(2015, 3, 1, 1, 0, tzinfo=timezone.utc)
DAY0 = date(2015, 2, 28)


def _fixed_clock() -> datetime:
    return FIXED_NOW


def _new_session_factory(tmp_path) -> sessionmaker:
    engine = build_engine(f"sqlite:///{tmp_path / 'reportdata.db'}")
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def _seed_user(db, email: str = "ny@example.com", tz_name: str = "America/New_York") -> User:
    user = User(email=email, timezone=tz_name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _seed_day_zero(db, user: User) -> None:
    # 38.889g of fat is exactly ten points.
    food = Food(name="Pasta dinner", calories=2000, fat=38.889)
    exercise = Exercise(code="02065", category="running", description="Running, 6 mph", metabolic_equivalent=6.0)
    db.add_all([food, exercise])
    db.flush()
    db.add_all(
        [
            Weight(user_id=user.id, date=DAY0, pounds=150.0),
            FoodEaten(user_id=user.id, food_id=food.id, date=DAY0, serving_qty=1.0),
            ExercisePerformed(user_id=user.id, exercise_id=exercise.id, date=DAY0, minutes=30),
        ]
    )
    db.commit()


def _rows(session_factory, user_id: int) -> list[ReportData]:
    db = session_factory()
    try:
        return db.query(ReportData).filter(ReportData.user_id == user_id).order_by(ReportData.date).all()
    finally:
        db.close()


def test_end_to_end_new_york_day(tmp_path):
    factory = _new_session_factory(tmp_path)
    db = factory()
    user = _seed_user(db)
    _seed_day_zero(db, user)
    user_id = user.id
    db.close()

    updated = ReportDataUpdateTask(factory, user_id, DAY0, clock=_fixed_clock)()

    assert updated == [DAY0]
    rows = _rows(factory, user_id)
    assert len(rows) == 1
    row = rows[0]
    assert row.date == DAY0
    assert row.pounds == 150.0
    # 6.0 MET * 68.04 kg * 0.5 h
    assert row.net_calories == 2000 - 204
    assert row.net_points == pytest.approx(10.0 - 4.1, abs=0.01)

    db = factory()
    assert db.get(User, user_id).last_updated_time == datetime(2015, 3, 1, 1, 0)
    db.close()


def test_rerun_with_unchanged_data_keeps_one_identical_row(tmp_path):
    factory = _new_session_factory(tmp_path)
    db = factory()
    user = _seed_user(db)
    _seed_day_zero(db, user)
    db.close()

    ReportDataUpdateTask(factory, user.id, DAY0, clock=_fixed_clock)()
    first = [(r.id, r.date, r.pounds, r.net_calories, r.net_points) for r in _rows(factory, user.id)]
    ReportDataUpdateTask(factory, user.id, DAY0, clock=_fixed_clock)()
    second = [(r.id, r.date, r.pounds, r.net_calories, r.net_points) for r in _rows(factory, user.id)]

    assert len(first) == 1
    assert first == second


def test_walk_covers_every_day_through_today_and_carries_weight_forward(tmp_path):
    factory = _new_session_factory(tmp_path)
    db = factory()
    user = _seed_user(db)
    db.add(Weight(user_id=user.id, date=DAY0 - timedelta(days=10), pounds=180.0))
    db.add(Weight(user_id=user.id, date=DAY0 - timedelta(days=1), pounds=178.5))
    db.commit()
    db.close()

    updated = ReportDataUpdateTask(factory, user.id, DAY0 - timedelta(days=3), clock=_fixed_clock)()

    assert updated == [DAY0 - timedelta(days=n) for n in (3, 2, 1, 0)]
    rows = _rows(factory, user.id)
    assert [r.pounds for r in rows] == [180.0, 180.0, 178.5, 178.5]
    assert all(r.net_calories == 0 and r.net_points == 0.0 for r in rows)


def test_existing_row_is_updated_in_place(tmp_path):
    factory = _new_session_factory(tmp_path)
    db = factory()
    user = _seed_user(db)
    _seed_day_zero(db, user)
    db.add(ReportData(user_id=user.id, date=DAY0, pounds=1.0))
    db.commit()
    existing_id = db.query(ReportData.id).filter(ReportData.user_id == user.id).scalar()
    db.close()

    ReportDataUpdateTask(factory, user.id, DAY0, clock=_fixed_clock)()

    rows = _rows(factory, user.id)
    assert [r.id for r in rows] == [existing_id]
    assert rows[0].pounds == 150.0
    assert rows[0].net_calories == 1796


def test_new_row_defaults_net_values_to_zero(tmp_path):
    factory = _new_session_factory(tmp_path)
    db = factory()
    user = _seed_user(db)
    row = ReportData(user_id=user.id, date=DAY0, pounds=150.0)
    db.add(row)
    db.commit()
    db.refresh(row)
    assert row.net_calories == 0
    assert row.net_points == 0.0
    db.close()


def test_missing_weight_baseline_stops_the_walk(tmp_path):
    factory = _new_session_factory(tmp_path)
    db = factory()
    user = _seed_user(db)
    db.add(Weight(user_id=user.id, date=DAY0, pounds=150.0))
    db.commit()
    db.close()

    with pytest.raises(NoWeightBaselineError) as excinfo:
        ReportDataUpdateTask(factory, user.id, DAY0 - timedelta(days=1), clock=_fixed_clock)()

    assert excinfo.value.day == DAY0 - timedelta(days=1)
    assert _rows(factory, user.id) == []
    db = factory()
    assert db.get(User, user.id).last_updated_time is None
    db.close()


def test_failure_keeps_earlier_days_and_skips_later_ones(tmp_path):
    factory = _new_session_factory(tmp_path)
    db = factory()
    user = _seed_user(db)
    exercise = Exercise(code="01015", category="bicycling", description="Bicycling", metabolic_equivalent=8.0)
    db.add(exercise)
    db.add(Weight(user_id=user.id, date=DAY0 - timedelta(days=5), pounds=160.0))
    db.flush()
    db.add(ExercisePerformed(user_id=user.id, exercise_id=exercise.id, date=DAY0 - timedelta(days=1), minutes=45))
    db.commit()
    db.close()

    def _storage_failure(met, minutes, pounds):
        raise RuntimeError("storage unavailable")

    task = ReportDataUpdateTask(
        factory,
        user.id,
        DAY0 - timedelta(days=2),
        calories_burned=_storage_failure,
        clock=_fixed_clock,
    )
    with pytest.raises(RuntimeError):
        task()

    assert [r.date for r in _rows(factory, user.id)] == [DAY0 - timedelta(days=2)]


def test_injected_burn_functions_are_used(tmp_path):
    factory = _new_session_factory(tmp_path)
    db = factory()
    user = _seed_user(db)
    _seed_day_zero(db, user)
    db.close()

    calls: list[tuple[float, int, float]] = []

    def _calories(met, minutes, pounds):
        calls.append((met, minutes, pounds))
        return calculate_calories_burned(met, minutes, pounds)

    ReportDataUpdateTask(
        factory,
        user.id,
        DAY0,
        calories_burned=_calories,
        points_burned=lambda met, minutes, pounds: 2.5,
        clock=_fixed_clock,
    )()

    assert calls == [(6.0, 30, 150.0)]
    assert _rows(factory, user.id)[0].net_points == pytest.approx(7.5, abs=0.01)


def test_missing_user_is_skipped(tmp_path):
    factory = _new_session_factory(tmp_path)
    assert ReportDataUpdateTask(factory, 999, DAY0, clock=_fixed_clock)() == []
