"""
Tests for the booking and invoice HTTP endpoints.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from booking_number import BookingNumberAllocator
from dependencies import get_allocator, get_invoice_service, get_store
from exceptions import StoreError
from main import app
from store import MemoryRecordStore
from tax_invoice import InvoiceService


class LookupOutageStore(MemoryRecordStore):
    def select(self, table, columns=None, filters=None, order=None, limit=None):
        raise StoreError("connection refused")


class InvoiceOutageStore(MemoryRecordStore):
    def insert(self, table, record):
        if table == "invoices":
            raise StoreError("invoices table unavailable")
        return super().insert(table, record)


@pytest.fixture
def make_client(ist, clock):
    def _make(store: MemoryRecordStore) -> TestClient:
        app.dependency_overrides[get_store] = lambda: store
        app.dependency_overrides[get_allocator] = lambda: BookingNumberAllocator(store, ist, clock=clock)
        app.dependency_overrides[get_invoice_service] = lambda: InvoiceService(store, ist, clock=clock)
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client, memory_store) -> TestClient:
    return make_client(memory_store)


BOOKING = {
    "booking_amount": 2000,
    "total_participants": 2,
    "booking_date": "2026-02-03",
    "contact_person_name": "Ravi Kumar",
    "contact_person_number": "9876543210",
    "time_slot": {"start_time": "06:00", "end_time": "09:00"},
}

INVOICE_REQUEST = {
    "experience": {"title": "White Desert Safari", "price": 1500, "location": "Dhordo"},
    "activity": {"name": "Camel ride", "price": 1180},
    "vendor_profile": {"company_name": "Rann Adventures", "gst_number": "24ABCDE1234F1Z5"},
}


def test_health(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"status": "Backend running"}


def test_create_bookings_allocates_sequential_numbers(client):
    first = client.post("/api/bookings", json=BOOKING)
    second = client.post("/api/bookings", json=BOOKING)

    assert first.status_code == 201
    assert first.json()["booking_number"] == "26011801"
    assert first.json()["booking_number_degraded"] is False
    assert second.json()["booking_number"] == "26011802"


def test_view_booking(client):
    booking_id = client.post("/api/bookings", json=BOOKING).json()["booking_id"]

    response = client.get(f"/api/bookings/{booking_id}")

    assert response.status_code == 200
    body = response.json()
    assert body["booking_number"] == "26011801"
    assert body["time_slot"] == {"start_time": "06:00", "end_time": "09:00"}


def test_unknown_booking_is_404(client):
    assert client.get("/api/bookings/42").status_code == 404
    assert client.post("/api/bookings/42/invoice", json=INVOICE_REQUEST).status_code == 404


def test_update_booking_status(client, memory_store):
    booking_id = client.post("/api/bookings", json=BOOKING).json()["booking_id"]

    response = client.put(f"/api/bookings/{booking_id}/status", json={"status": "CONFIRMED"})

    assert response.status_code == 200
    assert memory_store.select("bookings", columns=["status"]) == [{"status": "CONFIRMED"}]


def test_invalid_status_is_rejected(client):
    booking_id = client.post("/api/bookings", json=BOOKING).json()["booking_id"]

    response = client.put(f"/api/bookings/{booking_id}/status", json={"status": "LOST"})

    assert response.status_code == 422


def test_create_and_fetch_invoice(client):
    booking_id = client.post("/api/bookings", json=BOOKING).json()["booking_id"]

    response = client.post(f"/api/bookings/{booking_id}/invoice", json=INVOICE_REQUEST)

    assert response.status_code == 201
    invoice = response.json()["invoice"]
    assert invoice["invoice_number"] == "INV-26011801-20260118"
    assert invoice["date_time"] == "03/02/2026 - 06:00 - 09:00"
    assert invoice["vendor_name"] == "Rann Adventures"
    assert invoice["place_of_supply"] == "Gujarat"

    fetched = client.get("/api/invoices/INV-26011801-20260118")
    assert fetched.status_code == 200
    assert fetched.json()["booking_id"] == booking_id


def test_second_invoice_for_booking_is_409(client):
    booking_id = client.post("/api/bookings", json=BOOKING).json()["booking_id"]
    client.post(f"/api/bookings/{booking_id}/invoice", json=INVOICE_REQUEST)

    response = client.post(f"/api/bookings/{booking_id}/invoice", json=INVOICE_REQUEST)

    assert response.status_code == 409


def test_invoice_store_failure_blocks_response(make_client):
    store = InvoiceOutageStore()
    client = make_client(store)
    booking_id = client.post("/api/bookings", json=BOOKING).json()["booking_id"]

    response = client.post(f"/api/bookings/{booking_id}/invoice", json=INVOICE_REQUEST)

    assert response.status_code == 503
    assert store.select("invoices") == []


def test_unknown_invoice_is_404(client):
    assert client.get("/api/invoices/INV-00000000-20260118").status_code == 404


def test_exhausted_daily_sequence_is_409(client, memory_store):
    for sequence in range(1, 100):
        memory_store.insert("bookings", {"booking_number": f"260118{sequence:02d}"})

    response = client.post("/api/bookings", json=BOOKING)

    assert response.status_code == 409


@pytest.mark.parametrize(
    "overrides",
    [
        {"total_participants": -2},
        {"total_participants": 0},
        {"booking_amount": -1},
    ],
)
def test_invalid_booking_amounts_are_rejected(client, memory_store, overrides):
    response = client.post("/api/bookings", json={**BOOKING, **overrides})

    assert response.status_code == 422
    assert memory_store.select("bookings") == []


def test_booking_created_during_lookup_outage_is_flagged(make_client):
    client = make_client(LookupOutageStore())

    response = client.post("/api/bookings", json=BOOKING)

    assert response.status_code == 201
    assert response.json()["booking_number"] == "26011800"
    assert response.json()["booking_number_degraded"] is True
