from fastapi import HTTPException, Request

from booking_engine.core.exceptions import ErrorCode, Result
from booking_engine.services import BookingService, HoursService, SlotService

STATUS_BY_CODE = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.STORE_UNAVAILABLE: 503,
}


def get_slot_service(request: Request) -> SlotService:
    return request.app.state.slot_service


def get_booking_service(request: Request) -> BookingService:
    return request.app.state.booking_service


def get_hours_service(request: Request) -> HoursService:
    return request.app.state.hours_service


def unwrap(result: Result):
    """Return the result's value or raise the matching HTTP error."""
    if result.ok:
        return result.value
    error = result.error
    raise HTTPException(
        status_code=STATUS_BY_CODE.get(error.code, 400),
        detail=error.to_dict(),
    )
