from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.catalog import serialize_food
from api.report_data import get_report_data_service
from db.database import get_db
from db.models import Exercise, ExercisePerformed, Food, FoodEaten, User, Weight
from db.queries import foods_eaten_within_range, get_user
from services.report_data_service import ReportDataService
from utils.datetime_utils import today_for_tz

router = APIRouter(prefix="/users/{user_id}", tags=["logs"])

RECENT_FOODS_DEFAULT_DAYS = 14

# Module-level alias so a field named "date" does not shadow the type.
LogDate = Optional[date]


# --- Pydantic Schemas ---

class WeightLogCreate(BaseModel):
    date: LogDate = None
    pounds: float = Field(gt=0)


class FoodEatenCreate(BaseModel):
    food_id: int
    date: LogDate = None
    serving_qty: float = Field(default=1.0, gt=0)


class ExercisePerformedCreate(BaseModel):
    exercise_id: int
    date: LogDate = None
    minutes: int = Field(gt=0)


def _require_user(db: Session, user_id: int) -> User:
    user = get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def _scheduled(future) -> str:
    return "scheduled" if future is not None else "superseded"


@router.post("/weights", status_code=201)
def log_weight(
    user_id: int,
    payload: WeightLogCreate,
    db: Session = Depends(get_db),
    service: ReportDataService = Depends(get_report_data_service),
):
    user = _require_user(db, user_id)
    day = payload.date or today_for_tz(user.timezone)
    # One weight per day; logging again overwrites the day's value.
    weight = db.query(Weight).filter(Weight.user_id == user.id, Weight.date == day).first()
    if weight is None:
        weight = Weight(user_id=user.id, date=day, pounds=payload.pounds)
        db.add(weight)
    else:
        weight.pounds = payload.pounds
    db.commit()
    db.refresh(weight)
    future = service.update_user_from_date(user, day)
    return {
        "id": weight.id,
        "date": weight.date.isoformat(),
        "pounds": weight.pounds,
        "report_data_update": _scheduled(future),
    }


@router.post("/foods-eaten", status_code=201)
def log_food_eaten(
    user_id: int,
    payload: FoodEatenCreate,
    db: Session = Depends(get_db),
    service: ReportDataService = Depends(get_report_data_service),
):
    user = _require_user(db, user_id)
    food = db.get(Food, payload.food_id)
    if food is None:
        raise HTTPException(status_code=404, detail="Food not found")
    day = payload.date or today_for_tz(user.timezone)
    food_eaten = FoodEaten(user_id=user.id, food_id=food.id, date=day, serving_qty=payload.serving_qty)
    db.add(food_eaten)
    db.commit()
    db.refresh(food_eaten)
    future = service.update_user_from_date(user, day)
    return {
        "id": food_eaten.id,
        "food_id": food.id,
        "date": food_eaten.date.isoformat(),
        "serving_qty": food_eaten.serving_qty,
        "calories": food_eaten.calories,
        "points": round(food_eaten.points, 1),
        "report_data_update": _scheduled(future),
    }


@router.post("/exercises-performed", status_code=201)
def log_exercise_performed(
    user_id: int,
    payload: ExercisePerformedCreate,
    db: Session = Depends(get_db),
    service: ReportDataService = Depends(get_report_data_service),
):
    user = _require_user(db, user_id)
    exercise = db.get(Exercise, payload.exercise_id)
    if exercise is None:
        raise HTTPException(status_code=404, detail="Exercise not found")
    day = payload.date or today_for_tz(user.timezone)
    performed = ExercisePerformed(user_id=user.id, exercise_id=exercise.id, date=day, minutes=payload.minutes)
    db.add(performed)
    db.commit()
    db.refresh(performed)
    future = service.update_user_from_date(user, day)
    return {
        "id": performed.id,
        "exercise_id": exercise.id,
        "date": performed.date.isoformat(),
        "minutes": performed.minutes,
        "report_data_update": _scheduled(future),
    }


@router.get("/foods-eaten/recent")
def recent_foods(
    user_id: int,
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    db: Session = Depends(get_db),
):
    """Distinct foods eaten in a date range (default: the last two weeks)."""
    user = _require_user(db, user_id)
    end = end_date or today_for_tz(user.timezone)
    start = start_date or (end - timedelta(days=RECENT_FOODS_DEFAULT_DAYS))
    if start > end:
        raise HTTPException(status_code=400, detail="start_date must be on or before end_date")
    return [serialize_food(f) for f in foods_eaten_within_range(db, user.id, start, end)]
