import uuid
from datetime import datetime, time
from sqlalchemy import String, Boolean, DateTime, ForeignKey, JSON, SmallInteger, Time, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from booking_engine.core.database import Base
from booking_engine.core.timeutils import utcnow


class StaffMember(Base):
    __tablename__ = "staff_members"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    business_id: Mapped[str] = mapped_column(String(36), ForeignKey("businesses.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    role: Mapped[str] = mapped_column(String(80), nullable=False, default="staff")
    specialties: Mapped[list[str]] = mapped_column(JSON, default=list)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class StaffSchedule(Base):
    """Weekly working window of a staff member. One row per staff member and day."""
    __tablename__ = "staff_schedules"
    __table_args__ = (
        UniqueConstraint("staff_id", "day_of_week", name="uq_staff_schedule_day"),
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_staff_schedule_day"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    staff_id: Mapped[str] = mapped_column(String(36), ForeignKey("staff_members.id"), nullable=False)
    day_of_week: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)


class StaffService(Base):
    """Which services a staff member performs."""
    __tablename__ = "staff_services"

    staff_id: Mapped[str] = mapped_column(String(36), ForeignKey("staff_members.id"), primary_key=True)
    service_id: Mapped[str] = mapped_column(String(36), ForeignKey("services.id"), primary_key=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
