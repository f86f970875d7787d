from booking_engine.schemas.business import (
    OperatingHoursItem,
    OperatingHoursUpdate,
    BulkOperatingHoursUpdate,
    StaffScheduleItem,
    StaffScheduleUpdate,
    BulkStaffScheduleUpdate,
)
from booking_engine.schemas.booking import (
    TimeSlot,
    AvailableSlotsResponse,
    NextSlotResponse,
    AppointmentCreate,
    AppointmentUpdate,
    AppointmentCancel,
    AppointmentStatusUpdate,
    AppointmentResponse,
)
