from sqlalchemy import Column, Integer, String, Float, ForeignKey, Date, DateTime
from datetime import datetime, timezone
from database import Base


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)

    # yyMMdd + 2-digit daily sequence
    booking_number = Column(String(8), unique=True, index=True)

    booking_amount = Column(Float)
    total_participants = Column(Integer, default=1)
    booking_date = Column(Date)

    contact_person_name = Column(String)
    contact_person_email = Column(String)
    contact_person_number = Column(String)
    pickup_location = Column(String)

    time_slot_start = Column(String)
    time_slot_end = Column(String)

    status = Column(String, default="PENDING")

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    booking_id = Column(Integer, ForeignKey("bookings.id"), unique=True)
    booking_number = Column(String(8), index=True)
    invoice_number = Column(String, unique=True)
    invoice_date = Column(DateTime)

    customer_name = Column(String)
    customer_address = Column(String)
    customer_email = Column(String)
    customer_phone = Column(String)

    experience_title = Column(String)
    activity_name = Column(String)
    date_time = Column(String)
    total_participants = Column(Integer)

    original_price_per_person = Column(Float)
    base_price_per_person = Column(Float)
    tax_amount_per_person = Column(Float)
    total_price_per_person = Column(Float)
    discount_per_person = Column(Float)
    net_price_per_person = Column(Float)

    total_base_price = Column(Float)
    total_tax_amount = Column(Float)
    total_amount = Column(Float)
    total_discount = Column(Float)
    total_discount_on_base = Column(Float)
    total_net_price = Column(Float)

    currency = Column(String(8))
    vendor_name = Column(String)
    vendor_address = Column(String)
    vendor_gst = Column(String)
    place_of_supply = Column(String)
    hsn_code = Column(String)
    logo_url = Column(String)
    invoice_type = Column(String, default="tax")

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))
