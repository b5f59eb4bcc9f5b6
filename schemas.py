from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, Field, PositiveInt


# -------------------
# CATALOG (READ-ONLY)
# -------------------
class Experience(BaseModel):
    title: str | None = None
    price: float | None = None
    location: str | None = None
    currency: str | None = None


class Activity(BaseModel):
    name: str | None = None
    price: float | None = None


class VendorProfile(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    company_name: str | None = None
    address: str | None = None
    gst_number: str | None = None
    state: str | None = None
    logo_url: str | None = None


# -------------------
# BOOKING
# -------------------
class TimeSlot(BaseModel):
    start_time: str
    end_time: str


class BookingCreate(BaseModel):
    booking_amount: float = Field(ge=0)
    total_participants: PositiveInt = 1
    booking_date: date | None = None
    contact_person_name: str | None = None
    contact_person_email: str | None = None
    contact_person_number: str | None = None
    pickup_location: str | None = None
    time_slot: TimeSlot | None = None

    def to_record(self) -> dict[str, Any]:
        record = self.model_dump(exclude={"time_slot"})
        if self.time_slot:
            record["time_slot_start"] = self.time_slot.start_time
            record["time_slot_end"] = self.time_slot.end_time
        return record


class Booking(BaseModel):
    """A booking as stored; amounts may arrive as strings from older rows."""

    id: int | None = None
    booking_number: str | None = None
    booking_amount: float | str | None = None
    total_participants: int | None = None
    booking_date: date | None = None
    contact_person_name: str | None = None
    contact_person_email: str | None = None
    contact_person_number: str | None = None
    pickup_location: str | None = None
    time_slot: TimeSlot | None = None
    status: str | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Booking":
        data = dict(record)
        start = data.pop("time_slot_start", None)
        end = data.pop("time_slot_end", None)
        if start or end:
            data["time_slot"] = {"start_time": start or "", "end_time": end or ""}
        return cls.model_validate(data)


# -------------------
# BOOKING STATUS
# -------------------
class BookingStatusUpdate(BaseModel):
    status: Literal[
        "PENDING",
        "CONFIRMED",
        "COMPLETED",
        "CANCELLED"
    ]


# -------------------
# INVOICE
# -------------------
class InvoiceCreate(BaseModel):
    experience: Experience | None = None
    activity: Activity | None = None
    vendor_profile: VendorProfile | None = None
