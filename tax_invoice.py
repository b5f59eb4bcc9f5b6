from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from datetime import date, datetime, time
from typing import Any, Callable
from zoneinfo import ZoneInfo

from exceptions import StoreError
from schemas import Activity, Booking, Experience, VendorProfile
from store import RecordStorePort

TAX_RATE = 0.18
TAX_INCLUSIVE_FACTOR = 1.18
HSN_CODE = "999799"
DEFAULT_CURRENCY = "INR"
DEFAULT_PLACE_OF_SUPPLY = "Gujarat"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaxInvoiceAmounts:
    booking_amount: float
    total_participants: int

    original_price_per_person: float
    ticket_price_per_person: float
    discount_per_person: float
    discount_on_base_per_person: float

    # Displayed net/base and tax come from the undiscounted catalog price
    base_price_per_person: float
    net_price_per_person: float
    tax_amount_per_person: float

    final_net_price_per_person: float
    final_tax_per_person: float
    total_price_per_person: float

    total_base_price: float
    total_tax_amount: float
    total_discount: float
    total_discount_on_base: float
    total_net_price: float
    total_amount: float


def _to_amount(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def compute_amounts(
    booking: Booking,
    experience: Experience | None,
    activity: Activity | None,
) -> TaxInvoiceAmounts:
    """
    Derive every invoice amount from what the customer paid and the catalog price.

    Prices are tax inclusive: an amount X splits into base X / 1.18 and tax
    base * 0.18. Tax is charged on the full catalog price; the discount is shown
    against the base price only. Nothing is rounded or clamped, so a negative
    discount (a surcharge) flows through unchanged.
    """
    booking_amount = _to_amount(booking.booking_amount)
    total_participants = booking.total_participants or 1

    if activity is not None and activity.price is not None:
        original_price_per_person = activity.price
    elif experience is not None and experience.price is not None:
        original_price_per_person = experience.price
    else:
        original_price_per_person = 0.0

    ticket_price_per_person = booking_amount / total_participants
    discount_per_person = original_price_per_person - ticket_price_per_person

    original_base_per_person = original_price_per_person / TAX_INCLUSIVE_FACTOR
    original_tax_per_person = original_base_per_person * TAX_RATE
    discount_on_base_per_person = discount_per_person / TAX_INCLUSIVE_FACTOR

    final_net_price_per_person = original_base_per_person - discount_on_base_per_person
    final_tax_per_person = original_tax_per_person
    total_price_per_person = final_net_price_per_person + final_tax_per_person

    return TaxInvoiceAmounts(
        booking_amount=booking_amount,
        total_participants=total_participants,
        original_price_per_person=original_price_per_person,
        ticket_price_per_person=ticket_price_per_person,
        discount_per_person=discount_per_person,
        discount_on_base_per_person=discount_on_base_per_person,
        base_price_per_person=original_base_per_person,
        net_price_per_person=original_base_per_person,
        tax_amount_per_person=original_tax_per_person,
        final_net_price_per_person=final_net_price_per_person,
        final_tax_per_person=final_tax_per_person,
        total_price_per_person=total_price_per_person,
        total_base_price=original_base_per_person * total_participants,
        total_tax_amount=original_tax_per_person * total_participants,
        total_discount=discount_per_person * total_participants,
        total_discount_on_base=discount_on_base_per_person * total_participants,
        total_net_price=original_base_per_person * total_participants,
        total_amount=total_price_per_person * total_participants,
    )


def generate_invoice_number(booking_number: str, today: date) -> str:
    return f"INV-{booking_number}-{today.strftime('%Y%m%d')}"


def format_date_time(booking: Booking, fallback: date) -> str:
    day = (booking.booking_date or fallback).strftime("%d/%m/%Y")
    if booking.time_slot:
        return f"{day} - {booking.time_slot.start_time} - {booking.time_slot.end_time}"
    return day


def resolve_vendor_name(vendor: VendorProfile | None) -> str:
    if vendor is None:
        return ""
    full_name = f"{vendor.first_name or ''} {vendor.last_name or ''}".strip()
    return full_name or vendor.company_name or ""


class InvoiceService:
    def __init__(
        self,
        store: RecordStorePort,
        timezone: ZoneInfo,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._timezone = timezone
        self._clock = clock or (lambda: datetime.now(self._timezone))

    def create_invoice(
        self,
        booking_id: int,
        booking_number: str,
        booking: Booking,
        experience: Experience | None,
        activity: Activity | None,
        vendor_profile: VendorProfile | None = None,
    ) -> dict[str, Any]:
        """
        Persist the tax invoice for a booking and return the stored row.

        Called once per booking. Store errors are re-raised as-is; retrying
        here could bill the same booking twice.
        """
        amounts = compute_amounts(booking, experience, activity)
        today = self._today()
        invoice_number = generate_invoice_number(booking_number, today)
        vendor = vendor_profile or VendorProfile()

        record = {
            "booking_id": booking_id,
            "booking_number": booking_number,
            "invoice_number": invoice_number,
            "invoice_date": datetime.combine(booking.booking_date or today, time.min),
            "customer_name": booking.contact_person_name or "Customer",
            "customer_address": booking.pickup_location
            or (experience.location if experience else None)
            or "",
            "customer_email": booking.contact_person_email or None,
            "customer_phone": booking.contact_person_number or None,
            "experience_title": (experience.title if experience else None) or "Experience",
            "activity_name": (activity.name if activity else None) or "",
            "date_time": format_date_time(booking, today),
            "total_participants": amounts.total_participants,
            "currency": (experience.currency if experience else None) or DEFAULT_CURRENCY,
            "vendor_name": resolve_vendor_name(vendor_profile) or None,
            "vendor_address": vendor.address or None,
            "vendor_gst": vendor.gst_number or None,
            "place_of_supply": vendor.state or DEFAULT_PLACE_OF_SUPPLY,
            "hsn_code": HSN_CODE,
            "logo_url": vendor.logo_url or None,
            "invoice_type": "tax",
        }
        record.update(_invoice_amount_columns(amounts))

        try:
            invoice = self._store.insert("invoices", record)
        except StoreError as e:
            logger.error(
                "Error creating invoice record",
                extra={"invoice_number": invoice_number, "error": str(e)},
            )
            raise

        logger.info(
            "Invoice created",
            extra={"booking_number": booking_number, "invoice_number": invoice_number},
        )
        return invoice

    def _today(self) -> date:
        now = self._clock()
        if now.tzinfo is not None:
            now = now.astimezone(self._timezone)
        return now.date()


_INVOICE_AMOUNT_COLUMNS = (
    "original_price_per_person",
    "base_price_per_person",
    "tax_amount_per_person",
    "total_price_per_person",
    "discount_per_person",
    "net_price_per_person",
    "total_base_price",
    "total_tax_amount",
    "total_amount",
    "total_discount",
    "total_discount_on_base",
    "total_net_price",
)


def _invoice_amount_columns(amounts: TaxInvoiceAmounts) -> dict[str, float]:
    values = asdict(amounts)
    return {name: values[name] for name in _INVOICE_AMOUNT_COLUMNS}
