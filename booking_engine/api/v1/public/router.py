from fastapi import APIRouter, Depends, HTTPException, Query
from datetime import date, datetime

from booking_engine.api.dependencies import get_booking_service, get_slot_service, unwrap
from booking_engine.schemas import (
    AppointmentCancel,
    AppointmentCreate,
    AppointmentResponse,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    AvailableSlotsResponse,
    NextSlotResponse,
    TimeSlot,
)
from booking_engine.services import BookingService, SlotService


router = APIRouter()


# ============== Helpers ==============

def parse_date(date_str: str) -> date:
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD")


# ============== Availability ==============

@router.get("/businesses/{bid}/availability", response_model=AvailableSlotsResponse)
async def get_availability(
    bid: str,
    date_str: str = Query(..., alias="date", description="Date in YYYY-MM-DD format"),
    service_id: str | None = Query(None, description="Service ID"),
    staff_id: str | None = Query(None, description="Only this staff member"),
    slot_service: SlotService = Depends(get_slot_service),
):
    """Every candidate slot for the day, taken ones marked unavailable."""
    target_date = parse_date(date_str)
    slots = unwrap(await slot_service.get_available_slots(
        bid, target_date, service_id=service_id, staff_id=staff_id
    ))

    return AvailableSlotsResponse(
        business_id=bid,
        date=date_str,
        service_id=service_id,
        staff_id=staff_id,
        available_count=sum(1 for s in slots if s.is_available),
        slots=[TimeSlot.model_validate(s) for s in slots],
    )


@router.get("/businesses/{bid}/availability/next", response_model=NextSlotResponse)
async def get_next_available_slot(
    bid: str,
    service_id: str = Query(..., description="Service ID"),
    staff_id: str | None = Query(None, description="Only this staff member"),
    slot_service: SlotService = Depends(get_slot_service),
):
    """First open slot within the search horizon, or null."""
    slot = unwrap(await slot_service.find_next_available_slot(bid, service_id, staff_id=staff_id))
    return NextSlotResponse(
        business_id=bid,
        service_id=service_id,
        slot=TimeSlot.model_validate(slot) if slot else None,
    )


# ============== Appointments ==============

@router.get("/businesses/{bid}/appointments", response_model=list[AppointmentResponse])
async def list_appointments(
    bid: str,
    status: str | None = Query(None, description="Filter by status"),
    date_str: str | None = Query(None, alias="date", description="Local date YYYY-MM-DD"),
    staff_id: str | None = Query(None),
    customer_id: str | None = Query(None),
    booking_service: BookingService = Depends(get_booking_service),
):
    on_date = parse_date(date_str) if date_str else None
    appointments = unwrap(await booking_service.list_appointments(
        bid, status=status, on_date=on_date, staff_id=staff_id, customer_id=customer_id
    ))
    return [AppointmentResponse.model_validate(a) for a in appointments]


@router.post("/businesses/{bid}/appointments", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    bid: str,
    request: AppointmentCreate,
    booking_service: BookingService = Depends(get_booking_service),
):
    """Book an appointment. Without staff_id the first free capable staff member is used."""
    appointment = unwrap(await booking_service.book_appointment(
        business_id=bid,
        customer_name=request.customer_name,
        customer_phone=request.customer_phone,
        service_id=request.service_id,
        start_time=request.start_time,
        staff_id=request.staff_id,
        customer_email=request.customer_email,
        notes=request.notes,
        add_on_ids=request.add_on_ids,
        customer_id=request.customer_id,
    ))
    return AppointmentResponse.model_validate(appointment)


@router.get("/appointments/{aid}", response_model=AppointmentResponse)
async def get_appointment(
    aid: str,
    booking_service: BookingService = Depends(get_booking_service),
):
    appointment = unwrap(await booking_service.get_appointment(aid))
    return AppointmentResponse.model_validate(appointment)


@router.patch("/appointments/{aid}", response_model=AppointmentResponse)
async def modify_appointment(
    aid: str,
    request: AppointmentUpdate,
    booking_service: BookingService = Depends(get_booking_service),
):
    """Reschedule or edit an appointment. Omitted fields are left as they are."""
    appointment = unwrap(await booking_service.modify_appointment(
        aid,
        new_start_time=request.new_start_time,
        new_staff_id=request.new_staff_id,
        new_service_id=request.new_service_id,
        notes=request.notes,
        add_on_ids=request.add_on_ids,
    ))
    return AppointmentResponse.model_validate(appointment)


@router.post("/appointments/{aid}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    aid: str,
    request: AppointmentCancel,
    booking_service: BookingService = Depends(get_booking_service),
):
    appointment = unwrap(await booking_service.cancel_appointment(aid, reason=request.reason))
    return AppointmentResponse.model_validate(appointment)


@router.post("/appointments/{aid}/status", response_model=AppointmentResponse)
async def update_appointment_status(
    aid: str,
    request: AppointmentStatusUpdate,
    booking_service: BookingService = Depends(get_booking_service),
):
    appointment = unwrap(await booking_service.update_status(aid, request.status))
    return AppointmentResponse.model_validate(appointment)
