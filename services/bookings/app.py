from contextlib import asynccontextmanager
from typing import Any, Dict, List

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from reservation_core.admission import ReservationService
from reservation_core.config import get_settings
from reservation_core.conflicts import ScanConflictChecker
from reservation_core.database import Base, engine, get_db
from reservation_core.dependencies import require_admin
from reservation_core.errors import install_error_handlers
from reservation_core.logging_middleware import add_audit_middleware
from reservation_core.models import Reservation, User
from reservation_core.rate_limit import apply_rate_limiter, limiter
from reservation_core.resources import ROOM, VEHICLE, ResourceKind
from reservation_core.schemas import (
    ReservationCreated,
    RoomReservationRequest,
    StatusUpdated,
    StatusUpdateRequest,
    VehicleReservationRequest,
)

settings = get_settings()
reservations = ReservationService(
    checker=ScanConflictChecker(include_cancelled=settings.conflict_scan_includes_cancelled),
    min_hours=settings.min_booking_hours,
    max_hours=settings.max_booking_hours,
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Bookings Service", version="1.0.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    install_error_handlers(fastapi_app)
    add_audit_middleware(fastapi_app, "bookings")
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "bookings"}


def _created(kind: ResourceKind, reservation: Reservation) -> ReservationCreated:
    return ReservationCreated(
        message=f"{kind.label} reserved successfully",
        booking_id=reservation.booking_id,
        start_time=reservation.start_time.strftime("%H:%M:%S"),
        status=reservation.status.value,
    )


def _status_updated(kind: ResourceKind, reservation: Reservation) -> StatusUpdated:
    return StatusUpdated(
        message=f"{kind.label} booking status updated",
        booking_id=reservation.booking_id,
        status=reservation.status.value,
    )


@app.post("/reserve_room", response_model=ReservationCreated, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
def reserve_room(request: Request, body: RoomReservationRequest, db: Session = Depends(get_db)) -> ReservationCreated:
    reservation = reservations.reserve(
        db,
        ROOM,
        user_id=body.user_id,
        resource_id=body.room_id,
        department_name=body.department_name,
        booking_date=body.booking_date,
        start_time=body.start_time,
        hours=body.hours,
    )
    return _created(ROOM, reservation)


@app.post("/reserve_vehicle", response_model=ReservationCreated, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
def reserve_vehicle(request: Request, body: VehicleReservationRequest, db: Session = Depends(get_db)) -> ReservationCreated:
    reservation = reservations.reserve(
        db,
        VEHICLE,
        user_id=body.user_id,
        resource_id=body.vehicle_id,
        department_name=body.department_name,
        booking_date=body.booking_date,
        start_time=body.start_time,
        hours=body.hours,
        destination=body.destination,
    )
    return _created(VEHICLE, reservation)


@app.get("/reservations_room")
@limiter.limit("30/minute")
def list_room_reservations(request: Request, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    return reservations.list_reservations(db, ROOM)


@app.get("/reservations_vehicle")
@limiter.limit("30/minute")
def list_vehicle_reservations(request: Request, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    return reservations.list_reservations(db, VEHICLE)


@app.patch("/update_room_status", response_model=StatusUpdated)
@limiter.limit("20/minute")
def update_room_status(
    request: Request,
    body: StatusUpdateRequest,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> StatusUpdated:
    return _status_updated(ROOM, reservations.set_status(db, ROOM, body.booking_id, body.status))


@app.patch("/update_vehicle_status", response_model=StatusUpdated)
@limiter.limit("20/minute")
def update_vehicle_status(
    request: Request,
    body: StatusUpdateRequest,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> StatusUpdated:
    return _status_updated(VEHICLE, reservations.set_status(db, VEHICLE, body.booking_id, body.status))
