from functools import lru_cache
from zoneinfo import ZoneInfo

from fastapi import Depends

from booking_number import BookingNumberAllocator
from config import settings
from database import SessionLocal
from sql_store import SqlRecordStore
from store import MemoryRecordStore, RecordStorePort
from tax_invoice import InvoiceService


@lru_cache
def get_store() -> RecordStorePort:
    if settings.STORE_PROVIDER.lower() == "memory":
        return MemoryRecordStore()
    return SqlRecordStore(SessionLocal)


def get_timezone() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def get_allocator(store: RecordStorePort = Depends(get_store)) -> BookingNumberAllocator:
    return BookingNumberAllocator(
        store=store,
        timezone=get_timezone(),
        max_attempts=settings.BOOKING_NUMBER_MAX_ATTEMPTS,
    )


def get_invoice_service(store: RecordStorePort = Depends(get_store)) -> InvoiceService:
    return InvoiceService(store=store, timezone=get_timezone())
