"""Reservation admission and lifecycle, shared by every resource kind.

Admission validates in a fixed order and stops at the first failure:

1. required fields are present and non-empty,
2. ``hours`` is a whole number within the configured range,
3. ``booking_date`` and ``start_time`` are well formed and text fits its column,
4. the requester exists,
5. the resource exists,
6. the slot does not overlap another reservation.

Steps 4-6 and the insert run while holding the lock for the
(resource type, resource id, date) key, so two overlapping requests can never
both pass the conflict check.
"""
from __future__ import annotations

import logging
import re
from datetime import date, time
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .conflicts import ConflictChecker, ScanConflictChecker
from .errors import ConflictError, InfraError, NotFoundError, ReservationError, ValidationError
from .events import publish_reservation_event
from .intervals import TimeInterval
from .locks import KeyedLocks
from .models import Reservation, ReservationStatus, ResourceType, User
from .resources import ResourceKind

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_PATTERN = re.compile(r"^(?:[01]\d|2[0-3]):[0-5]\d(?::[0-5]\d)?$")
INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")

# Largest value a BIGINT primary key can hold.
MAX_STORED_ID = 2**63 - 1

SlotKey = Tuple[ResourceType, int, date]


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def parse_whole_number(value: Any) -> Optional[int]:
    """Return ``value`` as an int, or None when it is not a whole number."""

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and INTEGER_PATTERN.match(value.strip()):
        return int(value.strip())
    return None


def is_storable_id(value: int) -> bool:
    """Ids outside this range cannot name a stored row."""

    return 1 <= value <= MAX_STORED_ID


def check_length(name: str, value: Optional[str], limit: Optional[int]) -> None:
    if value is not None and limit is not None and len(value) > limit:
        raise ValidationError(f"{name} must be at most {limit} characters")


def column_length(model: Any, name: str) -> Optional[int]:
    return getattr(model.__table__.c[name].type, "length", None)


def parse_booking_date(value: Any) -> date:
    if not isinstance(value, str) or not DATE_PATTERN.match(value.strip()):
        raise ValidationError("Invalid booking_date format. Use YYYY-MM-DD")
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValidationError("Invalid booking_date format. Use YYYY-MM-DD") from exc


def normalize_start_time(value: Any) -> str:
    """Validate a 24-hour ``HH:MM`` or ``HH:MM:SS`` string and return it with seconds."""

    if not isinstance(value, str) or not TIME_PATTERN.match(value.strip()):
        raise ValidationError("Invalid start_time format. Use HH:MM or HH:MM:SS (24-hour)")
    value = value.strip()
    return value if value.count(":") == 2 else f"{value}:00"


class ReservationService:
    """Admits reservations and moves them through Pending/Approved/Cancelled."""

    def __init__(
        self,
        checker: Optional[ConflictChecker] = None,
        locks: Optional[KeyedLocks] = None,
        min_hours: int = 1,
        max_hours: int = 8,
    ) -> None:
        self.checker = checker or ScanConflictChecker()
        self.locks = locks or KeyedLocks()
        self.min_hours = min_hours
        self.max_hours = max_hours

    def reserve(
        self,
        db: Session,
        kind: ResourceKind,
        *,
        user_id: Any,
        resource_id: Any,
        department_name: Any,
        booking_date: Any,
        start_time: Any,
        hours: Any,
        destination: Any = None,
    ) -> Reservation:
        fields = {
            "user_id": user_id,
            kind.id_field: resource_id,
            "department_name": department_name,
            "booking_date": booking_date,
            "start_time": start_time,
            "hours": hours,
        }
        if "destination" in kind.extra_fields:
            fields["destination"] = destination
        missing = [name for name, value in fields.items() if is_blank(value)]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

        duration = parse_whole_number(hours)
        if duration is None or not self.min_hours <= duration <= self.max_hours:
            raise ValidationError(f"hours must be a whole number between {self.min_hours} and {self.max_hours}")

        day = parse_booking_date(booking_date)
        normalized_start = normalize_start_time(start_time)

        department = department_name.strip() if isinstance(department_name, str) else str(department_name)
        check_length("department_name", department, column_length(Reservation, "department_name"))
        trip_destination = None
        if "destination" in kind.extra_fields:
            trip_destination = destination.strip() if isinstance(destination, str) else str(destination)
            check_length("destination", trip_destination, column_length(Reservation, "destination"))

        requester_id = parse_whole_number(user_id)
        if requester_id is None:
            raise ValidationError("user_id must be an integer")
        target_id = parse_whole_number(resource_id)
        if target_id is None:
            raise ValidationError(f"{kind.id_field} must be an integer")

        reservation = Reservation(
            resource_type=kind.resource_type,
            resource_id=target_id,
            user_id=requester_id,
            department_name=department,
            booking_date=day,
            start_time=time.fromisoformat(normalized_start),
            hours=duration,
            destination=trip_destination,
            status=ReservationStatus.PENDING,
        )
        key: SlotKey = (kind.resource_type, target_id, day)
        with self.locks.hold(key):
            try:
                if not is_storable_id(requester_id) or db.get(User, requester_id) is None:
                    raise NotFoundError("User not found")
                if not is_storable_id(target_id) or not kind.exists(db, target_id, for_update=True):
                    raise NotFoundError(f"{kind.label} not found")
                if self.checker.has_conflict(db, kind.resource_type, target_id, day, reservation.start_time, duration):
                    raise ConflictError(f"{kind.label} already booked for this time slot")
                db.add(reservation)
                db.commit()
                db.refresh(reservation)
            except ReservationError:
                db.rollback()
                raise
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception("Storing reservation for %s %s on %s failed", kind.label, target_id, day)
                raise InfraError() from exc

        logger.info(
            "Admitted booking %s: %s %s on %s from %s for %sh",
            reservation.booking_id,
            kind.label,
            target_id,
            day.isoformat(),
            normalized_start,
            duration,
        )
        publish_reservation_event("reservation_created", reservation)
        return reservation

    def set_status(self, db: Session, kind: ResourceKind, booking_id: Any, status: Any) -> Reservation:
        """Overwrite a reservation's status.

        Any status may follow any other. Re-activating a cancelled reservation
        re-checks its slot, since cancelled rows may no longer hold it.
        """

        if is_blank(booking_id):
            raise ValidationError("booking_id is required")
        reservation_id = parse_whole_number(booking_id)
        if reservation_id is None:
            raise ValidationError("booking_id must be an integer")
        allowed = [item.value for item in ReservationStatus]
        if status not in allowed:
            raise ValidationError(f"Invalid status. Allowed values: {', '.join(allowed)}")
        new_status = ReservationStatus(status)

        try:
            reservation = self._find(db, kind, reservation_id)
            key: SlotKey = (kind.resource_type, reservation.resource_id, reservation.booking_date)
            with self.locks.hold(key):
                db.refresh(reservation)
                previous = reservation.status
                reactivating = previous == ReservationStatus.CANCELLED and new_status != ReservationStatus.CANCELLED
                if reactivating:
                    # Row lock shared with reserve().
                    kind.get(db, reservation.resource_id, for_update=True)
                if reactivating and self.checker.has_conflict(
                    db,
                    kind.resource_type,
                    reservation.resource_id,
                    reservation.booking_date,
                    reservation.start_time,
                    reservation.hours,
                    exclude_id=reservation.booking_id,
                ):
                    raise ConflictError(f"{kind.label} already booked for this time slot")
                reservation.status = new_status
                db.commit()
                db.refresh(reservation)
        except ReservationError:
            db.rollback()
            raise
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("Updating status of booking %s failed", reservation_id)
            raise InfraError() from exc

        logger.info("Booking %s status %s -> %s", reservation_id, previous.value, new_status.value)
        publish_reservation_event("reservation_status_changed", reservation)
        return reservation

    def list_reservations(self, db: Session, kind: ResourceKind) -> List[Dict[str, Any]]:
        try:
            rows = (
                db.query(Reservation, User.full_name, kind.name_column)
                .outerjoin(User, User.user_id == Reservation.user_id)
                .outerjoin(kind.model, kind.id_column == Reservation.resource_id)
                .filter(Reservation.resource_type == kind.resource_type)
                .order_by(Reservation.booking_date.desc(), Reservation.start_time.desc())
                .all()
            )
        except SQLAlchemyError as exc:
            logger.exception("Listing %s reservations failed", kind.label)
            raise InfraError() from exc
        return [serialize_reservation(kind, reservation, full_name, name) for reservation, full_name, name in rows]

    @staticmethod
    def _find(db: Session, kind: ResourceKind, booking_id: int) -> Reservation:
        if not is_storable_id(booking_id):
            raise NotFoundError("Booking not found")
        reservation = (
            db.query(Reservation)
            .filter(Reservation.booking_id == booking_id, Reservation.resource_type == kind.resource_type)
            .first()
        )
        if reservation is None:
            raise NotFoundError("Booking not found")
        return reservation


def serialize_reservation(
    kind: ResourceKind,
    reservation: Reservation,
    full_name: Optional[str] = None,
    resource_name: Optional[str] = None,
) -> Dict[str, Any]:
    interval = TimeInterval.from_start(reservation.start_time, reservation.hours)
    payload: Dict[str, Any] = {
        "booking_id": reservation.booking_id,
        "user_id": reservation.user_id,
        "full_name": full_name,
        kind.id_field: reservation.resource_id,
        kind.name_field: resource_name,
        "department_name": reservation.department_name,
        "booking_date": reservation.booking_date.isoformat(),
        "start_time": interval.start_label,
        "end_time": interval.end_label,
        "hours": reservation.hours,
        "status": reservation.status.value,
    }
    for name in kind.extra_fields:
        payload[name] = getattr(reservation, name)
    return payload
