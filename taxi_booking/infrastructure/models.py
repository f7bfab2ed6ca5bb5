"""
SQLAlchemy ORM models.

Tables
------
* ``bookings``       -- ride requests and their driver decisions
* ``settings``       -- key/value tariff overrides (JSON-encoded values)
* ``driver_status``  -- the single last-known driver location (id = 1)

Indexes
-------
* **B-Tree** on ``status`` (admission reads every accepted booking),
  ``customer_contact`` and ``ride_datetime``.

Ride instants are stored as naive local wall-clock datetimes.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Text,
    func,
)

from .database import Base
from taxi_booking.domain.entities import Booking, Place
from taxi_booking.domain.enums import BookingStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingModel(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    customer_contact = Column(String(64), nullable=False)
    customer_name = Column(String(120), nullable=True)

    pickup_location = Column(String(255), nullable=False)
    pickup_lat = Column(Float, nullable=True)
    pickup_lng = Column(Float, nullable=True)
    dropoff_location = Column(String(255), nullable=False)
    dropoff_lat = Column(Float, nullable=True)
    dropoff_lng = Column(Float, nullable=True)
    wait_and_return = Column(Boolean, default=False, nullable=False)

    ride_datetime = Column(DateTime, nullable=False)
    ride_end_datetime = Column(DateTime, nullable=False)
    ride_duration_minutes = Column(Float, nullable=True)
    passengers = Column(Integer, nullable=False)
    waiting_minutes = Column(Float, default=0, nullable=False)
    distance_km = Column(Float, nullable=False)
    estimated_pickup_minutes = Column(Integer, nullable=True)

    fare_amount = Column(Float, nullable=False)
    currency = Column(String(8), nullable=False)
    status = Column(
        Enum(BookingStatus, values_callable=lambda e: [m.value for m in e]),
        default=BookingStatus.PENDING,
        nullable=False,
    )
    driver_response = Column(String(32), nullable=True)

    created_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("idx_bookings_status", "status"),
        Index("idx_bookings_contact", "customer_contact"),
        Index("idx_bookings_ride_datetime", "ride_datetime"),
        CheckConstraint("ride_end_datetime > ride_datetime", name="ck_bookings_window"),
    )

    def to_entity(self) -> Booking:
        return Booking(
            id=self.id,
            customer_contact=self.customer_contact,
            customer_name=self.customer_name,
            pickup=Place(self.pickup_location, self.pickup_lat, self.pickup_lng),
            dropoff=Place(self.dropoff_location, self.dropoff_lat, self.dropoff_lng),
            ride_start=self.ride_datetime,
            ride_end=self.ride_end_datetime,
            passengers=self.passengers,
            waiting_minutes=self.waiting_minutes,
            wait_and_return=bool(self.wait_and_return),
            distance_km=self.distance_km,
            estimated_pickup_minutes=self.estimated_pickup_minutes,
            fare_amount=self.fare_amount,
            currency=self.currency,
            status=BookingStatus(self.status),
            driver_response=self.driver_response,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class SettingModel(Base):
    __tablename__ = "settings"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=False)


class DriverStatusModel(Base):
    __tablename__ = "driver_status"

    id = Column(Integer, primary_key=True)
    driver_lat = Column(Float, nullable=False)
    driver_lng = Column(Float, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
