from fastapi import APIRouter, Depends, HTTPException

from booking_engine.api.dependencies import get_hours_service, unwrap
from booking_engine.schemas import (
    BulkOperatingHoursUpdate,
    BulkStaffScheduleUpdate,
    OperatingHoursItem,
    OperatingHoursUpdate,
    StaffScheduleItem,
)
from booking_engine.services import HoursService


router = APIRouter()


# ============== Business Hours ==============

@router.get("/businesses/{bid}/operating-hours", response_model=list[OperatingHoursItem])
async def get_operating_hours(
    bid: str,
    hours_service: HoursService = Depends(get_hours_service),
):
    """Get operating hours for a business (all 7 days, 0=Sunday)."""
    days = unwrap(await hours_service.get_weekly_hours(bid))
    return [OperatingHoursItem(**day) for day in days]


@router.put("/businesses/{bid}/operating-hours", response_model=list[OperatingHoursItem])
async def update_operating_hours(
    bid: str,
    request: BulkOperatingHoursUpdate,
    hours_service: HoursService = Depends(get_hours_service),
):
    """Update operating hours for several days at once."""
    unwrap(await hours_service.set_weekly_business_hours(
        bid, [item.model_dump() for item in request.hours]
    ))

    return await get_operating_hours(bid, hours_service)


@router.patch("/businesses/{bid}/operating-hours/{day}", response_model=OperatingHoursItem)
async def update_single_day_hours(
    bid: str,
    day: int,
    request: OperatingHoursUpdate,
    hours_service: HoursService = Depends(get_hours_service),
):
    """Update operating hours for a single day. Omitted fields keep their values."""
    if day != request.day_of_week:
        raise HTTPException(status_code=400, detail="Day in path and body must match")

    changes = request.model_dump(exclude_unset=True)
    changes.pop("day_of_week")
    unwrap(await hours_service.update_business_day(bid, day, **changes))
    days = await get_operating_hours(bid, hours_service)
    return days[day]


# ============== Staff Schedules ==============

@router.get("/staff/{sid}/schedule", response_model=list[StaffScheduleItem])
async def get_staff_schedule(
    sid: str,
    hours_service: HoursService = Depends(get_hours_service),
):
    """Weekly schedule of a staff member (all 7 days, 0=Sunday)."""
    days = unwrap(await hours_service.get_weekly_schedule(sid))
    return [StaffScheduleItem(**day) for day in days]


@router.put("/staff/{sid}/schedule", response_model=list[StaffScheduleItem])
async def update_staff_schedule(
    sid: str,
    request: BulkStaffScheduleUpdate,
    hours_service: HoursService = Depends(get_hours_service),
):
    unwrap(await hours_service.set_weekly_staff_schedule(
        sid, [item.model_dump() for item in request.days]
    ))

    return await get_staff_schedule(sid, hours_service)
