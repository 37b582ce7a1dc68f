"""Pydantic schemas shared across the services."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, EmailStr, Field

from .models import RoleEnum


class RegisterRequest(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=1)
    role: RoleEnum = RoleEnum.USER


class RegisterResponse(BaseModel):
    message: str
    user_id: int


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    message: str = "Login successful"
    access_token: str
    token_type: str = "bearer"
    user_id: int
    full_name: str
    role: RoleEnum


class UserRead(BaseModel):
    user_id: int
    full_name: str
    email: EmailStr
    role: RoleEnum
    created_at: datetime

    model_config = {"from_attributes": True}


class RoomRead(BaseModel):
    room_id: int
    room_name: str
    capacity: int
    photo_url: Optional[str] = None


class VehicleRead(BaseModel):
    vehicle_id: int
    vehicle_name: str
    vehicle_number: str
    capacity: int
    photo_url: Optional[str] = None


# Reservation bodies are deliberately loose: the admission engine reports
# missing or malformed fields itself, in a fixed order.
class ReservationRequestBase(BaseModel):
    user_id: Any = None
    department_name: Any = None
    booking_date: Any = None
    start_time: Any = None
    hours: Any = None


class RoomReservationRequest(ReservationRequestBase):
    room_id: Any = None


class VehicleReservationRequest(ReservationRequestBase):
    vehicle_id: Any = None
    destination: Any = None


class ReservationCreated(BaseModel):
    message: str
    booking_id: int
    start_time: str
    status: str


class StatusUpdateRequest(BaseModel):
    booking_id: Any = None
    status: Any = None


class StatusUpdated(BaseModel):
    message: str
    booking_id: int
    status: str


class DeleteResponse(BaseModel):
    success: bool = True
