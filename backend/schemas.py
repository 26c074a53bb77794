"""Pydantic schemas for API request/response validation.

Field names are snake_case in Python and camelCase on the wire, matching
the payloads produced by the room-scan frontend.
"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import Any, Optional


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


# ---------- Room ----------
class DimensionsIn(CamelModel):
    length: float = 2.0
    width: float = 2.0
    height: float = 2.0
    unit: str = "ft"


class PositionIn(CamelModel):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    rotation: float = 0.0


class RoomDimensionsIn(CamelModel):
    length: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    unit: str = "ft"


class DoorIn(CamelModel):
    x: Optional[float] = None
    z: Optional[float] = None
    width: float = 3.0
    wall: Optional[str] = None
    position: Optional[float] = Field(None, description="Offset along the wall, from its start corner")


class WindowIn(CamelModel):
    x: Optional[float] = None
    z: Optional[float] = None
    width: float = 4.0
    height: float = 4.0
    wall: Optional[str] = None
    position: Optional[float] = Field(None, description="Offset along the wall, from its start corner")


class FloorplanDataIn(CamelModel):
    doors: list[DoorIn] = []
    windows: list[WindowIn] = []


# ---------- Objects ----------
class ObjectIn(CamelModel):
    """One detected item; unknown fields (mask URLs, bounding boxes...) pass through."""
    id: Optional[str] = None
    label: str
    category: str = "furniture"
    estimated_dimensions: Optional[DimensionsIn] = None
    position: Optional[PositionIn] = Field(None, alias="position3D")
    detected_color: Optional[str] = None
    material: Optional[str] = None
    style: Optional[str] = None
    confidence: float = 1.0

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"


class PositionedModelOut(CamelModel):
    id: str
    label: str
    category: str
    dimensions: dict = Field(..., alias="estimatedDimensions")
    detected_color: Optional[str] = None
    material: Optional[str] = None
    style: Optional[str] = None
    confidence: float = 1.0
    position: dict = Field(..., alias="position3D")
    model_url: Optional[str] = None
    generation_type: str = "procedural"
    is_identity_item: bool = False
    used_random_fallback: bool = False

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"


# ---------- Identity ----------
class IdentityProfileIn(CamelModel):
    activities: list[str] = []
    social_style: Optional[str] = None
    is_host: bool = False
    chronotype: Optional[str] = None
    prefer_natural_light: bool = False
    prefer_dark_room: bool = False
    material_preference: Optional[str] = None
    tech_visibility: Optional[str] = None
    chaos_level: Optional[str] = None
    empty_space_feeling: Optional[str] = None
    furnishing_density: Optional[str] = None
    decoration_density: Optional[str] = None


class IdentityItemsRequest(CamelModel):
    identity_profile: IdentityProfileIn
    existing_labels: list[str] = []


class IdentityItemsResponse(CamelModel):
    items: list[dict]
    count: int


# ---------- Layout ----------
class LayoutRequest(CamelModel):
    # Validated by the route so a bad list is a 400, not a 422
    objects: Optional[Any] = None
    room_dimensions: Optional[RoomDimensionsIn] = None
    floorplan_data: Optional[FloorplanDataIn] = None
    identity_profile: Optional[IdentityProfileIn] = None
    prefer_detected_positions: bool = False
    save: bool = True


class PlacementRuleOut(CamelModel):
    label: str
    key: str
    zone: str
    wall: Optional[str] = None
    near_to: list[str] = []
    min_spacing: float
    wall_offset: float
    facing: str
    stackable: bool
    model_url: Optional[str] = None
