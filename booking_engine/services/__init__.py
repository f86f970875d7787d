from booking_engine.services.entity_store import EntityStore
from booking_engine.services.locks import StaffLockRegistry
from booking_engine.services.slot_service import SlotService, TimeSlot
from booking_engine.services.booking_service import BookingService
from booking_engine.services.hours_service import HoursService

__all__ = [
    "EntityStore",
    "StaffLockRegistry",
    "SlotService",
    "TimeSlot",
    "BookingService",
    "HoursService",
]
