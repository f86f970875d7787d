import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy import String, Text, DateTime, ForeignKey, JSON, Index, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from booking_engine.core.database import Base
from booking_engine.core.timeutils import utcnow
from booking_engine.models.enums import AppointmentStatus


class Appointment(Base):
    """A booked interval for one customer with one staff member.

    start_time and end_time are naive UTC. Appointments are never deleted;
    cancelling only changes the status.
    """
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_staff_start", "staff_id", "start_time"),
        Index("ix_appointments_business_start", "business_id", "start_time"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    business_id: Mapped[str] = mapped_column(String(36), ForeignKey("businesses.id"), nullable=False)
    customer_id: Mapped[str] = mapped_column(String(36), ForeignKey("customers.id"), nullable=False, index=True)
    staff_id: Mapped[str] = mapped_column(String(36), ForeignKey("staff_members.id"), nullable=False)
    service_id: Mapped[str] = mapped_column(String(36), ForeignKey("services.id"), nullable=False)
    add_on_ids: Mapped[list[str]] = mapped_column(JSON, default=list)
    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    total_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=AppointmentStatus.SCHEDULED.value)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)
