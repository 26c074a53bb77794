"""
Data records shared by every stage of the furniture layout engine.

All lengths are feet, measured from the room centre (0, 0): -z is the back
wall, +z the front wall, -x the left wall and +x the right wall.
Rotations are radians about the vertical axis with 0 facing +z.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


FEET_PER_METER = 3.28084

DEFAULT_ROOM_LENGTH = 20.0
DEFAULT_ROOM_WIDTH = 16.0
DEFAULT_ROOM_HEIGHT = 9.0
DEFAULT_ITEM_DIMENSIONS = (2.0, 2.0, 2.0)

WALLS = ("back", "front", "left", "right")

# Floorplan analysis reports walls by compass or by screen side
WALL_ALIASES = {
    "back": "back", "north": "back", "top": "back", "n": "back",
    "front": "front", "south": "front", "bottom": "front", "s": "front",
    "left": "left", "west": "left", "w": "left",
    "right": "right", "east": "right", "e": "right",
}

_METER_UNITS = {"m", "meter", "meters", "metre", "metres"}


def to_feet(value: float, unit: Optional[str]) -> float:
    """Convert *value* to feet when *unit* names meters."""
    if unit and unit.strip().lower() in _METER_UNITS:
        return value * FEET_PER_METER
    return value


def normalize_wall(wall: Optional[str]) -> Optional[str]:
    """Map a wall name or alias onto back/front/left/right (None if unknown)."""
    if not wall:
        return None
    return WALL_ALIASES.get(wall.strip().lower())


@dataclass(frozen=True)
class Dimensions:
    """Physical extents of an item: length along x, width along z."""

    length: float
    width: float
    height: float

    @classmethod
    def from_values(cls, length: float, width: float, height: float,
                    unit: Optional[str] = "ft") -> "Dimensions":
        return cls(
            length=to_feet(length, unit),
            width=to_feet(width, unit),
            height=to_feet(height, unit),
        )

    @property
    def footprint_area(self) -> float:
        return self.length * self.width

    def to_dict(self) -> dict:
        return {"length": self.length, "width": self.width,
                "height": self.height, "unit": "ft"}


@dataclass(frozen=True)
class Pose:
    """A resolved or detected 3D pose."""

    x: float
    y: float
    z: float
    rotation: float = 0.0

    def to_dict(self) -> dict:
        return {
            "x": round(self.x, 4),
            "y": round(self.y, 4),
            "z": round(self.z, 4),
            "rotation": round(self.rotation, 6),
        }


@dataclass
class Item:
    """A placeable thing, either detected in a photo or generated from a profile."""

    id: str
    label: str
    category: str = "furniture"
    dimensions: Optional[Dimensions] = None
    position: Optional[Pose] = None
    detected_color: Optional[str] = None
    material: Optional[str] = None
    style: Optional[str] = None
    confidence: float = 1.0
    is_identity_item: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def dims(self) -> Dimensions:
        if self.dimensions is None:
            return Dimensions(*DEFAULT_ITEM_DIMENSIONS)
        return self.dimensions

    @property
    def footprint_area(self) -> float:
        return self.dims.footprint_area


@dataclass(frozen=True)
class Door:
    """A door opening; x/z is its centre in room coordinates."""

    x: float
    z: float
    width: float = 3.0
    wall: Optional[str] = None


@dataclass(frozen=True)
class Window:
    """A window opening; x/z is its centre in room coordinates."""

    x: float
    z: float
    width: float = 4.0
    height: float = 4.0
    wall: Optional[str] = None


def opening_center(wall: str, offset: float, room_length: float,
                   room_width: float) -> Tuple[float, float]:
    """
    Convert an offset along a wall into room-centred coordinates.

    *offset* is measured in feet from the wall's left end (back/front walls)
    or back end (left/right walls), the way floorplan analysis reports it.
    """
    half_l = room_length / 2
    half_w = room_width / 2
    if wall == "back":
        return offset - half_l, -half_w
    if wall == "front":
        return offset - half_l, half_w
    if wall == "left":
        return -half_l, offset - half_w
    if wall == "right":
        return half_l, offset - half_w
    return 0.0, 0.0


@dataclass
class Room:
    """Rectangular room footprint with its openings."""

    length: float = DEFAULT_ROOM_LENGTH
    width: float = DEFAULT_ROOM_WIDTH
    height: float = DEFAULT_ROOM_HEIGHT
    doors: List[Door] = field(default_factory=list)
    windows: List[Window] = field(default_factory=list)

    def __post_init__(self):
        if not self.length or self.length <= 0:
            self.length = DEFAULT_ROOM_LENGTH
        if not self.width or self.width <= 0:
            self.width = DEFAULT_ROOM_WIDTH
        if not self.height or self.height <= 0:
            self.height = DEFAULT_ROOM_HEIGHT

    @property
    def half_length(self) -> float:
        return self.length / 2

    @property
    def half_width(self) -> float:
        return self.width / 2

    def windows_on(self, wall: str) -> List[Window]:
        return [w for w in self.windows if normalize_wall(w.wall) == wall]

    def to_dict(self) -> dict:
        return {"length": self.length, "width": self.width,
                "height": self.height, "unit": "ft"}


@dataclass(frozen=True)
class PlacedItem:
    """
    Working record for an item whose pose is final.

    Later items may rest on or align to a PlacedItem, but never move it.
    """

    id: str
    x: float
    y: float
    z: float
    length: float
    width: float
    height: float
    label: str
    rotation: float = 0.0
    is_floor_covering: bool = False
    used_random_fallback: bool = False

    @property
    def top(self) -> float:
        return self.y + self.height

    @property
    def pose(self) -> Pose:
        return Pose(self.x, self.y, self.z, self.rotation)


@dataclass(frozen=True)
class IdentityProfile:
    """Lifestyle answers from the identity quiz."""

    activities: Tuple[str, ...] = ()
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

    @property
    def seeks_natural_light(self) -> bool:
        return self.prefer_natural_light or "morning" in (self.chronotype or "").lower()

    @property
    def seeks_darkness(self) -> bool:
        return self.prefer_dark_room or "night" in (self.chronotype or "").lower()
