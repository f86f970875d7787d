# booking_engine/models/__init__.py

from booking_engine.core.database import Base

from booking_engine.models.other_models import Tenant, FAQ
from booking_engine.models.business import Business, BusinessHours
from booking_engine.models.staff import StaffMember, StaffSchedule, StaffService
from booking_engine.models.service import Service, ServiceAddOn
from booking_engine.models.customer import Customer
from booking_engine.models.appointment import Appointment
from booking_engine.models.enums import AppointmentStatus

__all__ = [
    "Base",
    "Tenant",
    "FAQ",
    "Business",
    "BusinessHours",
    "StaffMember",
    "StaffSchedule",
    "StaffService",
    "Service",
    "ServiceAddOn",
    "Customer",
    "Appointment",
    "AppointmentStatus",
]
