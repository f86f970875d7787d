"""
Error taxonomy for the availability and booking engines.

Engine internals raise these exceptions; every public engine operation is
wrapped with `returns_result`, so callers always receive a `Result` carrying
either a value or one of these errors, never a raised exception.
"""

import enum
import functools
import logging
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorCode(str, enum.Enum):
    NOT_FOUND = "not_found"
    VALIDATION_ERROR = "validation_error"
    SLOT_UNAVAILABLE = "slot_unavailable"
    OUTSIDE_BUSINESS_HOURS = "outside_business_hours"
    PAST_START_TIME = "past_start_time"
    INVALID_STATE = "invalid_state"
    SERVICE_NOT_ASSIGNED_TO_STAFF = "service_not_assigned_to_staff"
    STORE_UNAVAILABLE = "store_unavailable"


class BookingError(Exception):
    """Base class for every named engine failure."""

    code: ErrorCode = ErrorCode.VALIDATION_ERROR
    default_message = "Request could not be processed"

    def __init__(self, message: str | None = None, *, retryable: bool = False):
        self.message = message or self.default_message
        self.retryable = retryable
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
        }


# ============== Not Found ==============

class NotFound(BookingError):
    code = ErrorCode.NOT_FOUND
    default_message = "Resource not found"


class BusinessNotFound(NotFound):
    default_message = "Business not found"


class ServiceNotFound(NotFound):
    default_message = "Service not found"


class StaffNotFound(NotFound):
    default_message = "Staff member not found"


class AppointmentNotFound(NotFound):
    default_message = "Appointment not found"


class CustomerNotFound(NotFound):
    default_message = "Customer not found"


# ============== Rule Violations ==============

class ValidationError(BookingError):
    code = ErrorCode.VALIDATION_ERROR
    default_message = "Invalid request"


class SlotUnavailable(BookingError):
    code = ErrorCode.SLOT_UNAVAILABLE
    default_message = "Time slot is not available"


class OutsideBusinessHours(BookingError):
    code = ErrorCode.OUTSIDE_BUSINESS_HOURS
    default_message = "Requested time is outside business hours"


class PastStartTime(BookingError):
    code = ErrorCode.PAST_START_TIME
    default_message = "Start time must be in the future"


class InvalidState(BookingError):
    code = ErrorCode.INVALID_STATE
    default_message = "Operation not allowed in the current appointment state"


class ServiceNotAssignedToStaff(BookingError):
    code = ErrorCode.SERVICE_NOT_ASSIGNED_TO_STAFF
    default_message = "Staff member does not perform this service"


class StoreUnavailable(BookingError):
    code = ErrorCode.STORE_UNAVAILABLE
    default_message = "Data store is unavailable"


# ============== Result ==============

@dataclass
class Result(Generic[T]):
    """Success/error pair returned by engine operations."""

    value: T | None = None
    error: BookingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def returns_result(func):
    """Run an async engine operation and fold its failures into a `Result`."""

    @functools.wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> Result:
        try:
            return Result(value=await func(*args, **kwargs))
        except BookingError as exc:
            logger.info("%s rejected: %s (%s)", func.__name__, exc.code.value, exc.message)
            return Result(error=exc)
        except SQLAlchemyError as exc:
            logger.exception("%s failed in the data store", func.__name__)
            return Result(error=StoreUnavailable(str(exc.__class__.__name__)))

    return wrapper
