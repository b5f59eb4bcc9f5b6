"""
Tests for the SQLAlchemy-backed record store.
"""

from __future__ import annotations

from datetime import date, datetime

import pytest
from sqlalchemy.orm import sessionmaker

from booking_number import BookingNumberAllocator
from database import Base, make_engine
from exceptions import StoreConflictError, StoreError
from schemas import Activity, Booking, Experience
from sql_store import SqlRecordStore
from store import Order, eq, starts_with
from tax_invoice import InvoiceService


@pytest.fixture
def sql_store() -> SqlRecordStore:
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield SqlRecordStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))
    engine.dispose()


def test_insert_returns_stored_row_with_defaults(sql_store):
    row = sql_store.insert(
        "bookings",
        {"booking_number": "26011801", "booking_amount": 1500.0, "booking_date": date(2026, 1, 18)},
    )

    assert row["id"] == 1
    assert row["status"] == "PENDING"
    assert row["total_participants"] == 1
    assert row["booking_date"] == date(2026, 1, 18)
    assert isinstance(row["created_at"], datetime)


def test_select_with_prefix_order_and_limit(sql_store):
    for value in ("26011801", "26011803", "26011802", "26011709"):
        sql_store.insert("bookings", {"booking_number": value})

    rows = sql_store.select(
        "bookings",
        columns=["booking_number"],
        filters=[starts_with("booking_number", "260118")],
        order=Order("booking_number", descending=True),
        limit=1,
    )

    assert rows == [{"booking_number": "26011803"}]


def test_prefix_filter_treats_wildcards_literally(sql_store):
    sql_store.insert("bookings", {"booking_number": "26011801"})

    assert sql_store.select("bookings", filters=[starts_with("booking_number", "2601%")]) == []


def test_duplicate_booking_number_is_a_conflict(sql_store):
    sql_store.insert("bookings", {"booking_number": "26011801"})

    with pytest.raises(StoreConflictError):
        sql_store.insert("bookings", {"booking_number": "26011801"})

    assert len(sql_store.select("bookings")) == 1


def test_update_bookings(sql_store):
    row = sql_store.insert("bookings", {"booking_number": "26011801"})

    updated = sql_store.update("bookings", {"status": "CONFIRMED"}, [eq("id", row["id"])])

    assert [r["status"] for r in updated] == ["CONFIRMED"]
    assert sql_store.select("bookings", columns=["status"]) == [{"status": "CONFIRMED"}]


def test_invoices_cannot_be_updated(sql_store):
    with pytest.raises(StoreError):
        sql_store.update("invoices", {"total_amount": 0}, [eq("id", 1)])


@pytest.mark.parametrize(
    "call",
    [
        lambda s: s.select("payments"),
        lambda s: s.select("bookings", columns=["nope"]),
        lambda s: s.insert("bookings", {"nope": 1}),
        lambda s: s.update("bookings", {"nope": 1}, []),
    ],
)
def test_unknown_tables_and_columns_raise_store_error(sql_store, call):
    sql_store.insert("bookings", {"booking_number": "26011801"})

    with pytest.raises(StoreError):
        call(sql_store)


def test_allocator_over_sql_store(sql_store, ist, clock):
    allocator = BookingNumberAllocator(sql_store, ist, clock=clock)

    numbers = [allocator.create_booking({"booking_amount": 100.0})[0]["booking_number"] for _ in range(3)]

    assert numbers == ["26011801", "26011802", "26011803"]


def test_second_invoice_for_booking_is_rejected(sql_store, ist, clock):
    booking_row = sql_store.insert("bookings", {"booking_number": "26011801", "booking_amount": 2000.0})
    booking = Booking.from_record(booking_row)
    service = InvoiceService(sql_store, ist, clock=clock)

    invoice = service.create_invoice(
        booking_row["id"], "26011801", booking, Experience(title="Desert camp"), Activity(price=1180)
    )
    assert invoice["invoice_number"] == "INV-26011801-20260118"

    with pytest.raises(StoreConflictError):
        service.create_invoice(
            booking_row["id"], "26011801", booking, Experience(title="Desert camp"), Activity(price=1180)
        )
    assert len(sql_store.select("invoices")) == 1
