import logging

from fastapi import FastAPI, Depends, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from booking_number import BookingNumberAllocator
from config import settings
from database import Base, engine
from dependencies import get_allocator, get_invoice_service, get_store
from exceptions import BookingNumberOverflowError, StoreConflictError, StoreError
from schemas import Booking, BookingCreate, BookingStatusUpdate, InvoiceCreate
from store import RecordStorePort, eq
from tax_invoice import InvoiceService


# ===============================
# LOGGING
# ===============================
class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        extras = []
        for key in ("booking_number", "invoice_number", "reason", "error"):
            value = getattr(record, key, None)
            if value not in (None, ""):
                extras.append(f"{key}={value}")
        base = super().format(record)
        if extras:
            return f"{base} | " + " ".join(extras)
        return base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)


# ===============================
# APP INIT
# ===============================
app = FastAPI(title="Experience Booking Backend")


# ===============================
# CORS
# ===============================
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===============================
# DB INIT
# ===============================
Base.metadata.create_all(bind=engine)


def get_booking_row(booking_id: int, store: RecordStorePort) -> dict:
    try:
        rows = store.select("bookings", filters=[eq("id", booking_id)], limit=1)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if not rows:
        raise HTTPException(status_code=404, detail="Booking not found")
    return rows[0]


# ===============================
# HEALTH CHECK
# ===============================
@app.get("/")
def home():
    return {"status": "Backend running"}


# =====================================================
# BOOKINGS
# =====================================================
@app.post("/api/bookings", status_code=201)
def create_booking(
    data: BookingCreate,
    allocator: BookingNumberAllocator = Depends(get_allocator),
):
    try:
        booking, number = allocator.create_booking(data.to_record())
    except BookingNumberOverflowError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return {
        "message": "Booking created successfully",
        "booking_id": booking["id"],
        "booking_number": booking["booking_number"],
        "booking_number_degraded": number.degraded,
    }


@app.get("/api/bookings/{booking_id}")
def view_booking(booking_id: int, store: RecordStorePort = Depends(get_store)):
    row = get_booking_row(booking_id, store)
    return Booking.from_record(row)


@app.put("/api/bookings/{booking_id}/status")
def update_booking_status(
    booking_id: int,
    data: BookingStatusUpdate,
    store: RecordStorePort = Depends(get_store),
):
    get_booking_row(booking_id, store)
    try:
        store.update("bookings", {"status": data.status}, [eq("id", booking_id)])
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return {"message": "Booking status updated", "status": data.status}


# =====================================================
# INVOICES
# =====================================================
@app.post("/api/bookings/{booking_id}/invoice", status_code=201)
def create_booking_invoice(
    booking_id: int,
    data: InvoiceCreate,
    store: RecordStorePort = Depends(get_store),
    invoices: InvoiceService = Depends(get_invoice_service),
):
    booking = Booking.from_record(get_booking_row(booking_id, store))
    if not booking.booking_number:
        raise HTTPException(status_code=400, detail="Booking has no booking number")

    try:
        existing = store.select(
            "invoices", columns=["invoice_number"], filters=[eq("booking_id", booking_id)], limit=1
        )
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if existing:
        raise HTTPException(status_code=409, detail="Invoice already generated")

    try:
        invoice = invoices.create_invoice(
            booking_id,
            booking.booking_number,
            booking,
            data.experience,
            data.activity,
            data.vendor_profile,
        )
    except StoreConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return {
        "message": "Invoice generated",
        "invoice": invoice,
    }


@app.get("/api/invoices/{invoice_number}")
def view_invoice(invoice_number: str, store: RecordStorePort = Depends(get_store)):
    try:
        rows = store.select("invoices", filters=[eq("invoice_number", invoice_number)], limit=1)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if not rows:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return rows[0]
