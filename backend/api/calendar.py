from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from api.dependencies import get_controller, validate_date_key
from services.calendar_controller import CalendarController

router = APIRouter(prefix="/calendar", tags=["calendar"])


class NavigateRequest(BaseModel):
    delta: Literal[-1, 1]


@router.get("")
async def get_calendar(
    year: Optional[int] = None,
    month: Optional[int] = None,
    controller: CalendarController = Depends(get_controller),
):
    """Render the displayed month, optionally jumping to ``year``/``month`` first."""
    if (year is None) != (month is None):
        raise HTTPException(status_code=422, detail="year and month must be given together")
    if year is not None and month is not None:
        try:
            controller.go_to(year, month)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
    return controller.render()


@router.post("/navigate")
async def navigate_calendar(
    body: NavigateRequest,
    controller: CalendarController = Depends(get_controller),
):
    try:
        controller.navigate(body.delta)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return controller.render()


@router.post("/today")
async def reset_calendar(controller: CalendarController = Depends(get_controller)):
    controller.reset_to_today()
    return controller.render()


@router.post("/days/{date_key}/toggle")
async def toggle_day(
    date_key: str,
    controller: CalendarController = Depends(get_controller),
):
    """Flip a day; the new value is returned before the write lands."""
    key = validate_date_key(date_key)
    checked = controller.toggle(key)
    return {"date": key, "checked": checked, "summary": controller.summary()}


@router.get("/summary")
async def get_summary(controller: CalendarController = Depends(get_controller)):
    return controller.summary()
