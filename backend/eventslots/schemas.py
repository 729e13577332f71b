import datetime as dt
from typing import Optional, Union

from pydantic import BaseModel, Field, field_serializer, field_validator

from .domain.entities import (
    BannedUser,
    Event,
    EventStatus,
    Registration,
    RegistrationDraft,
    RegistrationStatus,
)
from .usecases.slots import SlotAvailability
from .utils.time import format_slot_label, parse_time_of_day

LooseInt = Optional[Union[int, str]]


def _normalize_label(value: str) -> str:
    return format_slot_label(parse_time_of_day(value))


def _parse_time(value: object) -> object:
    if isinstance(value, str):
        return parse_time_of_day(value)
    return value


class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = ""
    location: str = Field(default="", max_length=255)
    image_url: Optional[str] = Field(default=None, max_length=500)
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    slot_duration_minutes: LooseInt = None
    total_slots: LooseInt = None
    origin_icao: str = Field(min_length=3, max_length=4)
    destination_icao: str = Field(min_length=3, max_length=4)
    aircraft: str = Field(min_length=1, max_length=100)
    flight_level: Optional[str] = None
    estimated_duration: Optional[str] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_times(cls, value: object) -> object:
        return _parse_time(value)

    @field_validator("origin_icao", "destination_icao")
    @classmethod
    def _upper_icao(cls, value: str) -> str:
        return value.strip().upper()


class EventUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=255)
    image_url: Optional[str] = Field(default=None, max_length=500)
    date: Optional[dt.date] = None
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    slot_duration_minutes: LooseInt = None
    total_slots: LooseInt = None
    available_slots: Optional[int] = None
    origin_icao: Optional[str] = Field(default=None, min_length=3, max_length=4)
    destination_icao: Optional[str] = Field(default=None, min_length=3, max_length=4)
    aircraft: Optional[str] = Field(default=None, min_length=1, max_length=100)
    flight_level: Optional[str] = None
    estimated_duration: Optional[str] = None
    status: Optional[EventStatus] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_times(cls, value: object) -> object:
        return _parse_time(value)


class EventStatusUpdate(BaseModel):
    status: EventStatus


class RegistrationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    vatsim_cid: str = Field(pattern=r"^\d{3,10}$")
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    aircraft_type: str = Field(min_length=1, max_length=50)
    route: str = Field(min_length=1)
    notes: Optional[str] = None
    selected_time: str

    @field_validator("selected_time")
    @classmethod
    def _normalize_selected_time(cls, value: str) -> str:
        return _normalize_label(value)

    def to_draft(self) -> RegistrationDraft:
        return RegistrationDraft(
            name=self.name,
            vatsim_cid=self.vatsim_cid,
            email=self.email,
            aircraft_type=self.aircraft_type,
            route=self.route,
            notes=self.notes,
            selected_time=self.selected_time,
        )


class RegistrationStatusUpdate(BaseModel):
    status: RegistrationStatus


class RegistrationRead(BaseModel):
    registration_id: str
    event_id: str
    name: str
    vatsim_cid: str
    email: str
    aircraft_type: str
    route: str
    notes: Optional[str]
    selected_time: str
    registered_at: dt.datetime
    status: RegistrationStatus

    @field_serializer("registered_at")
    def _ser_datetime(self, value: dt.datetime) -> str:
        return value.isoformat()

    @classmethod
    def from_domain(cls, registration: Registration) -> "RegistrationRead":
        return cls(
            registration_id=registration.id,
            event_id=registration.event_id,
            name=registration.name,
            vatsim_cid=registration.vatsim_cid,
            email=registration.email,
            aircraft_type=registration.aircraft_type,
            route=registration.route,
            notes=registration.notes,
            selected_time=registration.selected_time,
            registered_at=registration.registered_at,
            status=registration.status,
        )


class EventRead(BaseModel):
    event_id: str
    title: str
    description: str
    location: str
    image_url: Optional[str]
    date: dt.date
    start_time: str
    end_time: str
    slot_duration_minutes: int
    origin_icao: str
    destination_icao: str
    aircraft: str
    flight_level: Optional[str]
    estimated_duration: Optional[str]
    status: EventStatus
    created_at: dt.datetime
    total_slots: int
    available_slots: int
    registrations: list[RegistrationRead]

    @classmethod
    def from_domain(cls, event: Event) -> "EventRead":
        return cls(
            event_id=event.id,
            title=event.title,
            description=event.description,
            location=event.location,
            image_url=event.image_url,
            date=event.date,
            start_time=format_slot_label(event.start_time),
            end_time=format_slot_label(event.end_time),
            slot_duration_minutes=event.slot_duration_minutes,
            origin_icao=event.route.origin_icao,
            destination_icao=event.route.destination_icao,
            aircraft=event.route.aircraft,
            flight_level=event.route.flight_level,
            estimated_duration=event.route.estimated_duration,
            status=event.status,
            created_at=event.created_at,
            total_slots=event.total_slots,
            available_slots=event.available_slots,
            registrations=[RegistrationRead.from_domain(r) for r in event.registrations],
        )


class SlotsRead(BaseModel):
    event_id: str
    slots: list[str]
    available: list[str]
    available_slots: int
    total_slots: int

    @classmethod
    def from_usecase(cls, availability: SlotAvailability) -> "SlotsRead":
        return cls(
            event_id=availability.event_id,
            slots=availability.slots,
            available=availability.available,
            available_slots=availability.available_slots,
            total_slots=availability.total_slots,
        )


class BanCreate(BaseModel):
    vatsim_cid: str = Field(pattern=r"^\d{3,10}$")
    reason: str = Field(min_length=1)
    name: str = ""
    email: str = ""
    banned_until: Optional[dt.datetime] = None

    @field_validator("banned_until")
    @classmethod
    def _require_timezone(cls, value: Optional[dt.datetime]) -> Optional[dt.datetime]:
        if value is not None and value.tzinfo is None:
            raise ValueError("banned_until must have timezone")
        return value


class BanRead(BaseModel):
    ban_id: str
    vatsim_cid: str
    name: str
    email: str
    reason: str
    banned_at: dt.datetime
    banned_until: Optional[dt.datetime]

    @classmethod
    def from_domain(cls, ban: BannedUser) -> "BanRead":
        return cls(
            ban_id=ban.id,
            vatsim_cid=ban.vatsim_cid,
            name=ban.name,
            email=ban.email,
            reason=ban.reason,
            banned_at=ban.banned_at,
            banned_until=ban.banned_until,
        )


class LoginRequest(BaseModel):
    username: str
    password: str


class TokenRead(BaseModel):
    access_token: str
    token_type: str = "bearer"
