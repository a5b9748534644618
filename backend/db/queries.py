from datetime import date

from sqlalchemy.orm import Session, joinedload

from db.models import (
    Exercise, ExercisePerformed, Food, FoodEaten, ReportData, User, Weight,
)


def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def weight_most_recent_on_date(db: Session, user_id: int, day: date) -> Weight | None:
    """Most recent weight recorded on or before the given day."""
    return (
        db.query(Weight)
        .filter(Weight.user_id == user_id, Weight.date <= day)
        .order_by(Weight.date.desc())
        .first()
    )


def foods_eaten_on_date(db: Session, user_id: int, day: date) -> list[FoodEaten]:
    return (
        db.query(FoodEaten)
        .join(Food, FoodEaten.food_id == Food.id)
        .options(joinedload(FoodEaten.food))
        .filter(FoodEaten.user_id == user_id, FoodEaten.date == day)
        .order_by(Food.name.asc())
        .all()
    )


def foods_eaten_within_range(db: Session, user_id: int, start_date: date, end_date: date) -> list[Food]:
    """Distinct foods the user ate between two dates inclusive, by name."""
    return (
        db.query(Food)
        .join(FoodEaten, FoodEaten.food_id == Food.id)
        .filter(
            FoodEaten.user_id == user_id,
            FoodEaten.date >= start_date,
            FoodEaten.date <= end_date,
        )
        .distinct()
        .order_by(Food.name.asc())
        .all()
    )


def exercises_performed_on_date(db: Session, user_id: int, day: date) -> list[ExercisePerformed]:
    return (
        db.query(ExercisePerformed)
        .join(Exercise, ExercisePerformed.exercise_id == Exercise.id)
        .options(joinedload(ExercisePerformed.exercise))
        .filter(ExercisePerformed.user_id == user_id, ExercisePerformed.date == day)
        .order_by(Exercise.description.asc())
        .all()
    )


def report_data_on_date(db: Session, user_id: int, day: date) -> ReportData | None:
    return (
        db.query(ReportData)
        .filter(ReportData.user_id == user_id, ReportData.date == day)
        .first()
    )


def report_data_for_user(db: Session, user_id: int) -> list[ReportData]:
    return (
        db.query(ReportData)
        .filter(ReportData.user_id == user_id)
        .order_by(ReportData.date.asc())
        .all()
    )
