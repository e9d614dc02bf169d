import uuid
from datetime import date, datetime, time

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from .core.db import Base
from .scheduling.entities import AppointmentStatus


def _new_id() -> str:
    return uuid.uuid4().hex


class Salon(Base):
    __tablename__ = "salons"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class SalonHours(Base):
    """One opening interval of a salon on a weekday (0 = Monday). Several rows per day are allowed."""

    __tablename__ = "salon_hours"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    salon_id: Mapped[str] = mapped_column(ForeignKey("salons.id"), nullable=False, index=True)
    weekday: Mapped[int] = mapped_column(Integer, nullable=False)
    is_open: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    open_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    close_time: Mapped[time | None] = mapped_column(Time, nullable=True)


class Stylist(Base):
    __tablename__ = "stylists"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    salon_id: Mapped[str] = mapped_column(ForeignKey("salons.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Bumped by every booking transaction; the UPDATE takes the stylist's row lock
    booking_version: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (UniqueConstraint("salon_id", "name", name="uq_stylist_salon_name"),)


class StylistSchedule(Base):
    """One working interval of a stylist on a weekday. No rows for a weekday means not working."""

    __tablename__ = "stylist_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    stylist_id: Mapped[str] = mapped_column(ForeignKey("stylists.id"), nullable=False, index=True)
    weekday: Mapped[int] = mapped_column(Integer, nullable=False)
    is_working: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)


class SalonClosedDate(Base):
    """Exceptional closure. No times means the whole day; stylist_id scopes it to one stylist."""

    __tablename__ = "salon_closed_dates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    salon_id: Mapped[str] = mapped_column(ForeignKey("salons.id"), nullable=False, index=True)
    stylist_id: Mapped[str | None] = mapped_column(ForeignKey("stylists.id"), nullable=True)
    closure_date: Mapped[date] = mapped_column("date", Date, nullable=False, index=True)
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)


class Service(Base):
    __tablename__ = "services"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    salon_id: Mapped[str] = mapped_column(ForeignKey("salons.id"), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    price_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (UniqueConstraint("salon_id", "name", name="uq_service_salon_name"),)


class Appointment(Base):
    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    salon_id: Mapped[str] = mapped_column(ForeignKey("salons.id"), nullable=False, index=True)
    stylist_id: Mapped[str] = mapped_column(ForeignKey("stylists.id"), nullable=False, index=True)
    service_id: Mapped[str] = mapped_column(ForeignKey("services.id"), nullable=False)
    client_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # Salon-local wall-clock time
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, index=True)
    duration_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[AppointmentStatus] = mapped_column(
        SAEnum(
            AppointmentStatus,
            native_enum=False,
            length=16,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        default=AppointmentStatus.SCHEDULED,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index(
            "uq_appointment_stylist_start",
            "stylist_id",
            "start_at",
            unique=True,
            postgresql_where=text("status != 'cancelled'"),
            sqlite_where=text("status != 'cancelled'"),
        ),
    )
