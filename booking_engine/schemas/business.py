from pydantic import BaseModel, Field


# ============== Operating Hours Schemas ==============

class OperatingHoursItem(BaseModel):
    day_of_week: int  # 0=Sunday, 6=Saturday
    day_name: str
    open_time: str | None  # "09:00"
    close_time: str | None  # "17:00"
    is_closed: bool


class OperatingHoursUpdate(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6)
    open_time: str | None = None
    close_time: str | None = None
    is_closed: bool = False


class BulkOperatingHoursUpdate(BaseModel):
    hours: list[OperatingHoursUpdate]


# ============== Staff Schedule Schemas ==============

class StaffScheduleItem(BaseModel):
    day_of_week: int
    day_name: str
    start_time: str | None
    end_time: str | None
    is_available: bool


class StaffScheduleUpdate(BaseModel):
    day_of_week: int = Field(..., ge=0, le=6)
    start_time: str | None = None
    end_time: str | None = None
    is_available: bool = True


class BulkStaffScheduleUpdate(BaseModel):
    days: list[StaffScheduleUpdate]
