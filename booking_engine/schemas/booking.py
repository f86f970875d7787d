from pydantic import BaseModel, Field, EmailStr
from datetime import datetime
from decimal import Decimal


# ============== Time Slot Schemas ==============

class TimeSlot(BaseModel):
    """A candidate slot for one staff member."""
    staff_id: str
    staff_name: str
    start_time: datetime
    end_time: datetime
    is_available: bool

    class Config:
        from_attributes = True


class AvailableSlotsResponse(BaseModel):
    """Every candidate slot for a business on a given date."""
    business_id: str
    date: str
    service_id: str | None = None
    staff_id: str | None = None
    available_count: int
    slots: list[TimeSlot]


class NextSlotResponse(BaseModel):
    business_id: str
    service_id: str
    slot: TimeSlot | None = None


# ============== Appointment Schemas ==============

class AppointmentCreate(BaseModel):
    """
    Book a new appointment. start_time must be an absolute instant.

    Either customer_id or customer_name and customer_phone must be given.
    """
    customer_id: str | None = None
    customer_name: str | None = Field(None, min_length=1, max_length=120)
    customer_phone: str | None = Field(None, min_length=6, max_length=40)
    customer_email: EmailStr | None = None
    service_id: str
    staff_id: str | None = None
    start_time: datetime
    add_on_ids: list[str] = Field(default_factory=list)
    notes: str | None = None


class AppointmentUpdate(BaseModel):
    """Fields left out keep their current values."""
    new_start_time: datetime | None = None
    new_staff_id: str | None = None
    new_service_id: str | None = None
    add_on_ids: list[str] | None = None
    notes: str | None = None


class AppointmentCancel(BaseModel):
    reason: str | None = Field(None, max_length=500)


class AppointmentStatusUpdate(BaseModel):
    status: str


class AppointmentResponse(BaseModel):
    id: str
    business_id: str
    customer_id: str
    staff_id: str
    service_id: str
    add_on_ids: list[str] = []
    start_time: datetime
    end_time: datetime
    total_price: Decimal
    total_duration_minutes: int
    status: str
    notes: str | None = None
    cancellation_reason: str | None = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

