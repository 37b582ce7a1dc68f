"""Bookable resource kinds and the lookups the reservation engine needs from them."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple, Type, Union

from sqlalchemy.orm import Session

from .models import ResourceType, Room, Vehicle

ResourceModel = Union[Room, Vehicle]


@dataclass(frozen=True)
class ResourceKind:
    resource_type: ResourceType
    model: Type[ResourceModel]
    id_field: str
    name_field: str
    label: str
    extra_fields: Tuple[str, ...] = ()

    @property
    def id_column(self):
        return getattr(self.model, self.id_field)

    @property
    def name_column(self):
        return getattr(self.model, self.name_field)

    def get(self, db: Session, resource_id: int, for_update: bool = False) -> Optional[ResourceModel]:
        query = db.query(self.model).filter(self.id_column == resource_id)
        if for_update:
            # Serializes admissions for this resource across worker processes.
            # SQLite compiles this away; the in-process key lock still applies.
            query = query.with_for_update()
        return query.first()

    def exists(self, db: Session, resource_id: int, for_update: bool = False) -> bool:
        return self.get(db, resource_id, for_update=for_update) is not None


ROOM = ResourceKind(
    resource_type=ResourceType.ROOM,
    model=Room,
    id_field="room_id",
    name_field="room_name",
    label="Room",
)

VEHICLE = ResourceKind(
    resource_type=ResourceType.VEHICLE,
    model=Vehicle,
    id_field="vehicle_id",
    name_field="vehicle_name",
    label="Vehicle",
    extra_fields=("destination",),
)
