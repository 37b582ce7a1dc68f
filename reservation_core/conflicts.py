"""Overlap detection between a candidate slot and stored reservations."""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date, time
from typing import Optional

from sqlalchemy.orm import Session

from .intervals import TimeInterval
from .models import Reservation, ReservationStatus, ResourceType

logger = logging.getLogger(__name__)


class ConflictChecker(ABC):
    """Answers whether a candidate slot collides with anything already booked.

    Implementations only see one (resource type, resource id, date) key per
    call, so an indexed structure keyed the same way can replace the scan.
    """

    @abstractmethod
    def has_conflict(
        self,
        db: Session,
        resource_type: ResourceType,
        resource_id: int,
        booking_date: date,
        start: time,
        hours: int,
        exclude_id: Optional[int] = None,
    ) -> bool:
        raise NotImplementedError


class ScanConflictChecker(ConflictChecker):
    """Linear scan over the reservations stored for the key."""

    def __init__(self, include_cancelled: bool = False) -> None:
        self.include_cancelled = include_cancelled

    def has_conflict(
        self,
        db: Session,
        resource_type: ResourceType,
        resource_id: int,
        booking_date: date,
        start: time,
        hours: int,
        exclude_id: Optional[int] = None,
    ) -> bool:
        candidate = TimeInterval.from_start(start, hours)
        query = db.query(Reservation).filter(
            Reservation.resource_type == resource_type,
            Reservation.resource_id == resource_id,
            Reservation.booking_date == booking_date,
        )
        if not self.include_cancelled:
            query = query.filter(Reservation.status != ReservationStatus.CANCELLED)
        if exclude_id is not None:
            query = query.filter(Reservation.booking_id != exclude_id)

        for existing in query.all():
            if candidate.overlaps(TimeInterval.from_start(existing.start_time, existing.hours)):
                logger.info(
                    "Slot %s-%s on %s %s/%s overlaps booking %s",
                    candidate.start_label,
                    candidate.end_label,
                    booking_date.isoformat(),
                    resource_type.value,
                    resource_id,
                    existing.booking_id,
                )
                return True
        return False
