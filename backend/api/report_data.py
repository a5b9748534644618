from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from db.database import get_db
from db.queries import get_user
from services.report_data_service import ReportDataResponse, ReportDataService
from utils.datetime_utils import today_for_tz

router = APIRouter(tags=["report-data"])

RequestedDate = Optional[date]


class RefreshRequest(BaseModel):
    date: RequestedDate = None


class RefreshResponse(BaseModel):
    status: str  # scheduled | superseded
    start_date: Optional[date] = None


def get_report_data_service(request: Request) -> ReportDataService:
    return request.app.state.report_data_service


@router.get("/report-data/status")
def report_data_status(service: ReportDataService = Depends(get_report_data_service)):
    return {"idle": service.is_idle()}


@router.get("/users/{user_id}/report-data", response_model=list[ReportDataResponse])
def list_report_data(
    user_id: int,
    db: Session = Depends(get_db),
    service: ReportDataService = Depends(get_report_data_service),
):
    if get_user(db, user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")
    return service.find_by_user(db, user_id)


@router.post("/users/{user_id}/report-data/refresh", response_model=RefreshResponse, status_code=202)
def refresh_report_data(
    user_id: int,
    payload: Optional[RefreshRequest] = None,
    db: Session = Depends(get_db),
    service: ReportDataService = Depends(get_report_data_service),
):
    """Request a recomputation from the given date (default: today in the user's zone)."""
    user = get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    requested = (payload.date if payload else None) or today_for_tz(user.timezone)
    future = service.update_user_from_date(user, requested)
    return RefreshResponse(
        status="scheduled" if future is not None else "superseded",
        start_date=service.scheduled_start_date(user.id),
    )
