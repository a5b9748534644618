from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from db.database import get_db
from db.models import Exercise, Food
from utils.nutrition import calculate_points

router = APIRouter(tags=["catalog"])


# --- Pydantic Schemas ---

class FoodCreate(BaseModel):
    name: str
    default_serving_qty: float = Field(default=1.0, gt=0)
    calories: int = Field(default=0, ge=0)
    fat: float = Field(default=0.0, ge=0)
    saturated_fat: float = Field(default=0.0, ge=0)
    carbs: float = Field(default=0.0, ge=0)
    fiber: float = Field(default=0.0, ge=0)
    sugar: float = Field(default=0.0, ge=0)
    protein: float = Field(default=0.0, ge=0)


class ExerciseCreate(BaseModel):
    code: str
    category: str
    description: str
    metabolic_equivalent: float = Field(gt=0)


def serialize_food(food: Food) -> dict:
    return {
        "id": food.id,
        "name": food.name,
        "default_serving_qty": food.default_serving_qty,
        "calories": food.calories,
        "fat": food.fat,
        "saturated_fat": food.saturated_fat,
        "carbs": food.carbs,
        "fiber": food.fiber,
        "sugar": food.sugar,
        "protein": food.protein,
        "points": round(calculate_points(food.protein, food.carbs, food.fat, food.fiber), 1),
    }


def serialize_exercise(exercise: Exercise) -> dict:
    return {
        "id": exercise.id,
        "code": exercise.code,
        "category": exercise.category,
        "description": exercise.description,
        "metabolic_equivalent": exercise.metabolic_equivalent,
    }


@router.post("/foods", status_code=201)
def create_food(payload: FoodCreate, db: Session = Depends(get_db)):
    food = Food(**payload.model_dump())
    db.add(food)
    db.commit()
    db.refresh(food)
    return serialize_food(food)


@router.get("/foods")
def list_foods(name: Optional[str] = None, db: Session = Depends(get_db)):
    query = db.query(Food)
    if name:
        query = query.filter(Food.name.ilike(f"%{name.strip()}%"))
    return [serialize_food(f) for f in query.order_by(Food.name.asc()).all()]


@router.post("/exercises", status_code=201)
def create_exercise(payload: ExerciseCreate, db: Session = Depends(get_db)):
    exercise = Exercise(**payload.model_dump())
    db.add(exercise)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Exercise code already exists")
    db.refresh(exercise)
    return serialize_exercise(exercise)


@router.get("/exercises")
def list_exercises(category: Optional[str] = None, db: Session = Depends(get_db)):
    query = db.query(Exercise)
    if category:
        query = query.filter(Exercise.category == category)
    return [serialize_exercise(e) for e in query.order_by(Exercise.description.asc()).all()]
