import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from circuitbreaker import circuit
from fastapi import Depends, FastAPI, File, Form, Request, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from reservation_core.admission import check_length, column_length, is_blank, is_storable_id, parse_whole_number
from reservation_core.cache import SimpleTTLCache
from reservation_core.config import get_settings
from reservation_core.database import Base, engine, get_db
from reservation_core.dependencies import require_admin
from reservation_core.errors import InfraError, NotFoundError, ValidationError, install_error_handlers
from reservation_core.logging_middleware import add_audit_middleware
from reservation_core.models import User
from reservation_core.rate_limit import apply_rate_limiter, limiter
from reservation_core.resources import ROOM, VEHICLE, ResourceKind
from reservation_core.schemas import DeleteResponse, RoomRead, VehicleRead
from reservation_core.storage import PhotoStore

settings = get_settings()
logger = logging.getLogger(__name__)
photo_store = PhotoStore(settings.upload_dir)
listing_cache: SimpleTTLCache[List[Dict[str, Any]]] = SimpleTTLCache(ttl=settings.resource_cache_ttl)

# 32-bit INTEGER column.
MAX_CAPACITY = 2**31 - 1


def _listing_key(kind: ResourceKind) -> str:
    return f"resource-list:{kind.resource_type.value}"


def _invalidate_listing(kind: ResourceKind) -> None:
    listing_cache.pop(_listing_key(kind))


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.run_db_migrations:
        Base.metadata.create_all(bind=engine)
    photo_store.ensure_root()
    yield


def create_app() -> FastAPI:
    fastapi_app = FastAPI(title="Resources Service", version="1.0.0", lifespan=lifespan)
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    apply_rate_limiter(fastapi_app)
    install_error_handlers(fastapi_app)
    add_audit_middleware(fastapi_app, "resources")
    fastapi_app.mount("/uploads", StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")
    return fastapi_app


app = create_app()


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok", "service": "resources"}


def _row_payload(kind: ResourceKind, row: Any) -> Dict[str, Any]:
    return {column.key: getattr(row, column.key) for column in kind.model.__table__.columns}


def _with_public_photo(payload: Dict[str, Any], base_url: str) -> Dict[str, Any]:
    return {**payload, "photo_url": photo_store.public_url(payload.get("photo_url"), base_url)}


def _list_resources(kind: ResourceKind, request: Request, db: Session) -> List[Dict[str, Any]]:
    def load() -> List[Dict[str, Any]]:
        rows = db.query(kind.model).order_by(kind.id_column.desc()).all()
        return [_row_payload(kind, row) for row in rows]

    try:
        rows = listing_cache.get_or_load(_listing_key(kind), load)
    except SQLAlchemyError as exc:
        logger.exception("Listing %s resources failed", kind.label)
        raise InfraError() from exc
    base_url = str(request.base_url)
    return [_with_public_photo(row, base_url) for row in rows]


def _parse_capacity(value: Optional[str]) -> int:
    capacity = parse_whole_number(value)
    if capacity is None or not 1 <= capacity <= MAX_CAPACITY:
        raise ValidationError("capacity must be a positive whole number")
    return capacity


def _create_resource(
    kind: ResourceKind,
    request: Request,
    db: Session,
    values: Dict[str, Any],
    photo: Optional[UploadFile],
    photo_url: Optional[str],
) -> Dict[str, Any]:
    reference: Optional[str] = photo_url.strip() if photo_url and photo_url.strip() else None
    for name, value in values.items():
        if isinstance(value, str):
            check_length(name, value, column_length(kind.model, name))
    check_length("photo_url", reference, column_length(kind.model, "photo_url"))
    stored_photo = False
    if photo is not None and photo.filename:
        reference = photo_store.save(photo.file, photo.filename)
        stored_photo = True

    resource = kind.model(**values, photo_url=reference)
    db.add(resource)
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Creating %s failed", kind.label)
        if stored_photo:
            photo_store.delete(reference)
        raise InfraError() from exc
    db.refresh(resource)
    _invalidate_listing(kind)
    logger.info("Created %s %s", kind.label, getattr(resource, kind.id_field))
    return _with_public_photo(_row_payload(kind, resource), str(request.base_url))


def _delete_resource(kind: ResourceKind, resource_id: int, db: Session) -> DeleteResponse:
    resource = kind.get(db, resource_id) if is_storable_id(resource_id) else None
    if resource is None:
        raise NotFoundError(f"{kind.label} not found")
    reference = resource.photo_url
    try:
        db.delete(resource)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Deleting %s %s failed", kind.label, resource_id)
        raise InfraError() from exc
    _invalidate_listing(kind)
    photo_store.delete(reference)
    logger.info("Deleted %s %s", kind.label, resource_id)
    return DeleteResponse()


@app.get("/rooms", response_model=List[RoomRead])
@circuit(failure_threshold=5, recovery_timeout=60)
def list_rooms(request: Request, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    return _list_resources(ROOM, request, db)


@app.post("/rooms", response_model=RoomRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def add_room(
    request: Request,
    room_name: Optional[str] = Form(None),
    capacity: Optional[str] = Form(None),
    photo_url: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    if is_blank(room_name) or is_blank(capacity):
        raise ValidationError("Missing room_name or capacity")
    values = {"room_name": room_name.strip(), "capacity": _parse_capacity(capacity)}
    return _create_resource(ROOM, request, db, values, photo, photo_url)


@app.delete("/rooms/{room_id}", response_model=DeleteResponse)
@limiter.limit("15/minute")
def delete_room(
    request: Request,
    room_id: int,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> DeleteResponse:
    return _delete_resource(ROOM, room_id, db)


@app.get("/vehicles", response_model=List[VehicleRead])
@circuit(failure_threshold=5, recovery_timeout=60)
def list_vehicles(request: Request, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    return _list_resources(VEHICLE, request, db)


@app.post("/vehicles", response_model=VehicleRead, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def add_vehicle(
    request: Request,
    vehicle_name: Optional[str] = Form(None),
    vehicle_number: Optional[str] = Form(None),
    capacity: Optional[str] = Form(None),
    photo_url: Optional[str] = Form(None),
    photo: Optional[UploadFile] = File(None),
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    if is_blank(vehicle_name) or is_blank(vehicle_number) or is_blank(capacity):
        raise ValidationError("Missing vehicle_name, vehicle_number or capacity")
    values = {
        "vehicle_name": vehicle_name.strip(),
        "vehicle_number": vehicle_number.strip(),
        "capacity": _parse_capacity(capacity),
    }
    return _create_resource(VEHICLE, request, db, values, photo, photo_url)


@app.delete("/vehicles/{vehicle_id}", response_model=DeleteResponse)
@limiter.limit("15/minute")
def delete_vehicle(
    request: Request,
    vehicle_id: int,
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> DeleteResponse:
    return _delete_resource(VEHICLE, vehicle_id, db)
