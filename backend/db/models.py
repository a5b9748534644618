from datetime import datetime
from sqlalchemy import (
    Column, Integer, Text, Float, Date, ForeignKey, Index, UniqueConstraint,
    DateTime,
)
from sqlalchemy.orm import relationship
from db.database import Base
from utils.nutrition import calculate_points, serving_ratio


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(Text, unique=True, nullable=False)
    timezone = Column(Text, nullable=False, default="UTC")
    last_updated_time = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    weights = relationship("Weight", back_populates="user", cascade="all, delete-orphan")
    foods_eaten = relationship("FoodEaten", back_populates="user", cascade="all, delete-orphan")
    exercises_performed = relationship("ExercisePerformed", back_populates="user", cascade="all, delete-orphan")
    report_data = relationship("ReportData", back_populates="user", cascade="all, delete-orphan")


class Weight(Base):
    __tablename__ = "weight"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_weight_user_date"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)
    pounds = Column(Float, nullable=False)

    user = relationship("User", back_populates="weights")


class Food(Base):
    __tablename__ = "food"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    default_serving_qty = Column(Float, nullable=False, default=1.0)
    calories = Column(Integer, nullable=False, default=0)
    fat = Column(Float, nullable=False, default=0.0)
    saturated_fat = Column(Float, nullable=False, default=0.0)
    carbs = Column(Float, nullable=False, default=0.0)
    fiber = Column(Float, nullable=False, default=0.0)
    sugar = Column(Float, nullable=False, default=0.0)
    protein = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime, default=datetime.utcnow)


class FoodEaten(Base):
    __tablename__ = "food_eaten"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    food_id = Column(Integer, ForeignKey("food.id"), nullable=False)
    date = Column(Date, nullable=False)
    serving_qty = Column(Float, nullable=False, default=1.0)

    user = relationship("User", back_populates="foods_eaten")
    food = relationship("Food")

    @property
    def calories(self) -> int:
        ratio = serving_ratio(self.serving_qty, self.food.default_serving_qty)
        return int(round((self.food.calories or 0) * ratio))

    @property
    def points(self) -> float:
        ratio = serving_ratio(self.serving_qty, self.food.default_serving_qty)
        per_serving = calculate_points(
            protein=self.food.protein,
            carbs=self.food.carbs,
            fat=self.food.fat,
            fiber=self.food.fiber,
        )
        return per_serving * ratio


class Exercise(Base):
    __tablename__ = "exercise"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(Text, unique=True, nullable=False)
    category = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    metabolic_equivalent = Column(Float, nullable=False)


class ExercisePerformed(Base):
    __tablename__ = "exercise_performed"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    exercise_id = Column(Integer, ForeignKey("exercise.id"), nullable=False)
    date = Column(Date, nullable=False)
    minutes = Column(Integer, nullable=False)

    user = relationship("User", back_populates="exercises_performed")
    exercise = relationship("Exercise")


class ReportData(Base):
    __tablename__ = "report_data"
    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_report_data_user_date"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)
    pounds = Column(Float, nullable=False, default=0.0)
    net_calories = Column(Integer, nullable=False, default=0)
    net_points = Column(Float, nullable=False, default=0.0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="report_data")


# Indexes
Index("idx_food_eaten_user_date", FoodEaten.user_id, FoodEaten.date)
Index("idx_exercise_performed_user_date", ExercisePerformed.user_id, ExercisePerformed.date)
