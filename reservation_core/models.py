"""SQLAlchemy models shared across all services."""
from __future__ import annotations

from datetime import date, datetime, time
from enum import Enum
from typing import List, Optional

from sqlalchemy import Date, DateTime, Enum as SqlEnum, ForeignKey, Index, Integer, String, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base


class RoleEnum(str, Enum):
    ADMIN = "admin"
    USER = "user"


class ResourceType(str, Enum):
    ROOM = "room"
    VEHICLE = "vehicle"


class ReservationStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    CANCELLED = "Cancelled"


class User(Base):
    __tablename__ = "users"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    full_name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    hashed_password: Mapped[str] = mapped_column(String(255))
    role: Mapped[RoleEnum] = mapped_column(SqlEnum(RoleEnum), default=RoleEnum.USER)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    reservations: Mapped[List["Reservation"]] = relationship(back_populates="requester")


class Room(Base):
    __tablename__ = "rooms"

    room_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    room_name: Mapped[str] = mapped_column(String(100))
    capacity: Mapped[int] = mapped_column(Integer)
    photo_url: Mapped[Optional[str]] = mapped_column(String(500), default=None)


class Vehicle(Base):
    __tablename__ = "vehicles"

    vehicle_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    vehicle_name: Mapped[str] = mapped_column(String(100))
    vehicle_number: Mapped[str] = mapped_column(String(30))
    capacity: Mapped[int] = mapped_column(Integer)
    photo_url: Mapped[Optional[str]] = mapped_column(String(500), default=None)


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (Index("ix_reservations_slot", "resource_type", "resource_id", "booking_date"),)

    booking_id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    resource_type: Mapped[ResourceType] = mapped_column(SqlEnum(ResourceType))
    # Rooms and vehicles live in separate tables, so no foreign key here.
    resource_id: Mapped[int] = mapped_column(Integer)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.user_id", ondelete="CASCADE"), index=True)
    department_name: Mapped[str] = mapped_column(String(100))
    booking_date: Mapped[date] = mapped_column(Date)
    start_time: Mapped[time] = mapped_column(Time)
    hours: Mapped[int] = mapped_column(Integer)
    destination: Mapped[Optional[str]] = mapped_column(String(255), default=None)
    status: Mapped[ReservationStatus] = mapped_column(SqlEnum(ReservationStatus), default=ReservationStatus.PENDING)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    requester: Mapped[User] = relationship(back_populates="reservations")
