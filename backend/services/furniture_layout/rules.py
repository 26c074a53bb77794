"""
Placement policies keyed by furniture label.

Labels are matched by substring against an ordered table: the first key
contained in the lower-cased label wins, so specific keys ("tv stand",
"floor lamp") are declared ahead of their general forms ("tv", "lamp").
The tables themselves live in ``data/furniture_rules.json`` and are loaded
once by :mod:`.loaders` into a :class:`RuleBook`.
"""

import enum
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .room_model import Dimensions


class Zone(str, enum.Enum):
    """Coarse placement strategy for an item."""

    FLOOR_COVERING = "floor-covering"
    NEAR_WINDOW = "near-window"
    WALL = "wall"
    CORNER = "corner"
    CENTER = "center"
    BESIDE = "beside"
    FLOATING = "floating"
    ON_TOP = "on-top"


class Facing(str, enum.Enum):
    FORWARD = "forward"
    TOWARD_RELATED = "toward-related"


# Anchors claim space first; stacked items wait for their supports
ZONE_PRIORITY: Dict[Zone, int] = {
    Zone.FLOOR_COVERING: 0,
    Zone.NEAR_WINDOW: 1,
    Zone.WALL: 2,
    Zone.CORNER: 3,
    Zone.CENTER: 4,
    Zone.BESIDE: 5,
    Zone.FLOATING: 6,
    Zone.ON_TOP: 7,
}

# Wall preferences that mean "whichever wall is free"
OPEN_WALL_PREFERENCES = ("any", "window")


@dataclass(frozen=True)
class PlacementRule:
    key: str
    zone: Zone
    wall: Optional[str] = None
    near_to: Tuple[str, ...] = ()
    min_spacing: float = 1.5
    wall_offset: float = 0.3
    facing: Facing = Facing.FORWARD
    stackable: bool = False

    @property
    def priority(self) -> int:
        return ZONE_PRIORITY[self.zone]

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "zone": self.zone.value,
            "wall": self.wall,
            "near_to": list(self.near_to),
            "min_spacing": self.min_spacing,
            "wall_offset": self.wall_offset,
            "facing": self.facing.value,
            "stackable": self.stackable,
        }


DEFAULT_RULE = PlacementRule(key="", zone=Zone.FLOATING, min_spacing=1.5)


@dataclass(frozen=True)
class StackingRule:
    """Support types an on-top item may rest on, in order of preference."""

    key: str
    supports: Tuple[str, ...]


@dataclass(frozen=True)
class ActivityItem:
    label: str
    key: str


@dataclass(frozen=True)
class RuleBook:
    """Read-only lookup tables injected into the layout engine."""

    placement_rules: Tuple[PlacementRule, ...]
    stacking_rules: Tuple[StackingRule, ...] = ()
    default_rule: PlacementRule = DEFAULT_RULE
    default_dimensions: Dict[str, Dimensions] = field(default_factory=dict)
    fallback_dimensions: Dimensions = Dimensions(1.0, 1.0, 2.0)
    colors: Tuple[Tuple[str, str], ...] = ()
    default_color: str = "#808080"
    materials: Tuple[Tuple[str, str], ...] = ()
    default_material: str = "wood"
    categories: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()
    activity_items: Dict[str, Tuple[ActivityItem, ...]] = field(default_factory=dict)
    model_assets: Tuple[Tuple[str, Tuple[str, ...]], ...] = ()


def resolve_rule(label: str, rule_book: RuleBook) -> PlacementRule:
    """Return the first rule whose key is a substring of *label*, else the default."""
    lower = (label or "").lower()
    for rule in rule_book.placement_rules:
        if rule.key in lower:
            return rule
    return rule_book.default_rule


def resolve_stacking_rule(label: str, rule_book: RuleBook) -> Optional[StackingRule]:
    lower = (label or "").lower()
    for rule in rule_book.stacking_rules:
        if rule.key in lower:
            return rule
    return None
