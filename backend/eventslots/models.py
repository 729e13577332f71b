from __future__ import annotations

from datetime import date, datetime, time
from typing import Optional

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.sqltypes import Date, DateTime, Integer, String, Text, Time

from .domain.entities import EventStatus, RegistrationStatus


class Base(DeclarativeBase):
    pass


def _enum_column(enum_cls: type) -> Enum:
    return Enum(
        enum_cls,
        values_callable=lambda cls: [e.value for e in cls],
        native_enum=False,
    )


class EventRow(Base):
    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="chk_events_window"),
        CheckConstraint("slot_duration_minutes >= 1", name="chk_events_duration"),
        CheckConstraint("total_slots >= 1", name="chk_events_total"),
        CheckConstraint(
            "available_slots >= 0 AND available_slots <= total_slots",
            name="chk_events_available",
        ),
        Index("idx_events_date", "date"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    location: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    slot_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    origin_icao: Mapped[str] = mapped_column(String(4), nullable=False)
    destination_icao: Mapped[str] = mapped_column(String(4), nullable=False)
    aircraft: Mapped[str] = mapped_column(String(100), nullable=False)
    flight_level: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    estimated_duration: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    status: Mapped[EventStatus] = mapped_column(
        _enum_column(EventStatus), nullable=False, default=EventStatus.UPCOMING
    )
    total_slots: Mapped[int] = mapped_column(Integer, nullable=False)
    available_slots: Mapped[int] = mapped_column(Integer, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    registrations: Mapped[list["RegistrationRow"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="RegistrationRow.position",
        lazy="selectin",
    )


class RegistrationRow(Base):
    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("event_id", "position", name="uq_registrations_position"),
        Index("idx_registrations_event", "event_id"),
        Index("idx_registrations_cid", "vatsim_cid"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    event_id: Mapped[str] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    vatsim_cid: Mapped[str] = mapped_column(String(20), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    aircraft_type: Mapped[str] = mapped_column(String(50), nullable=False)
    route: Mapped[str] = mapped_column(Text, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    selected_time: Mapped[str] = mapped_column(String(6), nullable=False)
    status: Mapped[RegistrationStatus] = mapped_column(
        _enum_column(RegistrationStatus), nullable=False, default=RegistrationStatus.PENDING
    )
    registered_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    event: Mapped["EventRow"] = relationship(back_populates="registrations")


class BannedUserRow(Base):
    __tablename__ = "banned_users"
    __table_args__ = (Index("idx_banned_users_cid", "vatsim_cid"),)

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    vatsim_cid: Mapped[str] = mapped_column(String(20), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    email: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    banned_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    banned_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=False), nullable=True)
