from fastapi import HTTPException, Request

from services.calendar_controller import CalendarController
from services.calendar_engine import parse_date_key
from services.checked_day_store import CheckedDayStore


def get_controller(request: Request) -> CalendarController:
    controller = getattr(request.app.state, "controller", None)
    if controller is None:
        raise HTTPException(status_code=503, detail="Calendar is not ready")
    return controller


def get_store(request: Request) -> CheckedDayStore:
    return get_controller(request).store


def validate_date_key(date_key: str) -> str:
    try:
        return parse_date_key(date_key).isoformat()
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
