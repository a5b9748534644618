import logging
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from api.report_data import get_report_data_service
from config import settings
from db.database import get_db
from db.models import User
from db.queries import get_user
from services.report_data_service import ReportDataService
from utils.datetime_utils import today_for_tz

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


def _validate_timezone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    name = value.strip()
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {value}")
    return name


class UserCreate(BaseModel):
    email: str
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: Optional[str]) -> Optional[str]:
        return _validate_timezone(value)


class UserUpdate(BaseModel):
    email: Optional[str] = None
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, value: Optional[str]) -> Optional[str]:
        return _validate_timezone(value)


class UserResponse(BaseModel):
    id: int
    email: str
    timezone: str
    last_updated_time: Optional[datetime] = None


def _serialize_user(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        timezone=user.timezone,
        last_updated_time=user.last_updated_time,
    )


@router.post("", response_model=UserResponse, status_code=201)
def create_user(payload: UserCreate, db: Session = Depends(get_db)):
    user = User(
        email=payload.email.strip().lower(),
        timezone=payload.timezone or settings.DEFAULT_TIMEZONE,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")
    db.refresh(user)
    logger.info("Created user [%s] in timezone [%s]", user.email, user.timezone)
    return _serialize_user(user)


@router.get("/{user_id}", response_model=UserResponse)
def read_user(user_id: int, db: Session = Depends(get_db)):
    user = get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return _serialize_user(user)


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    service: ReportDataService = Depends(get_report_data_service),
):
    user = get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    if payload.email is not None:
        user.email = payload.email.strip().lower()
    timezone_changed = payload.timezone is not None and payload.timezone != user.timezone
    if payload.timezone is not None:
        user.timezone = payload.timezone
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Email already registered")
    db.refresh(user)
    # A changed timezone can move which calendar day counts as today.
    if timezone_changed:
        service.update_user_from_date(user, today_for_tz(user.timezone))
    return _serialize_user(user)
