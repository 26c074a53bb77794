"""
Main furniture layout generator.

Places every item of a room in one sequential pass: items are sorted so
anchors (floor coverings, window and wall pieces) claim space before
floating and stacked items, then each item is resolved by its zone handler,
clamped into the room, moved out of collisions, nudged away from doors and
frozen as an obstacle for everything placed after it.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .assets import model_url_for
from .collision import overlaps, search_free_position
from .geometry_utils import audit_layout
from .identity import expand_identity_items
from .room_model import (
    Dimensions, IdentityProfile, Item, PlacedItem, Room, Window, normalize_wall,
)
from .rules import OPEN_WALL_PREFERENCES, Facing, PlacementRule, RuleBook, Zone, resolve_rule
from .stacking import find_support, stacked_pose

logger = logging.getLogger(__name__)

WALL_PADDING = 1.0          # ft kept clear between furniture and walls
WALL_BAND = 3.0             # ft; items this close to a wall slot share the wall
WALL_SPREAD_GAP = 1.5       # ft between items sharing a wall
WINDOW_CLEARANCE = 1.5      # ft between a window and the item in front of it
COFFEE_TABLE_GAP = 2.5      # ft between sofa front and coffee table
BESIDE_GAP = 0.3            # ft between an item and the neighbour it sits beside
FLOATING_GAP = 2.0          # ft between a floating item and its neighbour
SHELF_HEIGHT = 2.0          # ft; resting height of unsupported stacked items
DOOR_SIDE_CLEARANCE = 2.0   # ft added to each side of a door opening
DOOR_DEPTH = 3.0            # ft in front of and behind a door
DOOR_NUDGE = 4.0            # ft

WALL_ORDER = ("back", "left", "right", "front")

# Facing angle of an item standing against each wall (0 faces +z)
WALL_FACING = {
    "back": 0.0,
    "front": math.pi,
    "left": math.pi / 2,
    "right": -math.pi / 2,
}

OPPOSITE_WALL = {"back": "front", "front": "back", "left": "right", "right": "left"}

SOFA_LABELS = ("sofa", "couch", "sectional")


@dataclass
class Target:
    """Pose proposed by a zone handler, before clamping and collision search."""

    x: float
    z: float
    rotation: float = 0.0
    y: float = 0.0
    supported: bool = False


@dataclass
class LayoutResult:
    items: List[dict]
    placed: List[PlacedItem]
    summary: Dict[str, object]
    audit: Dict[str, object] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"items": self.items, "summary": self.summary, "audit": self.audit}


def _forward(rotation: float) -> Tuple[float, float]:
    """Unit (dx, dz) an item with *rotation* faces."""
    return math.sin(rotation), math.cos(rotation)


def _facing_towards(x: float, z: float, tx: float, tz: float) -> float:
    return math.atan2(tx - x, tz - z)


def _clamp(value: float, limit: float) -> float:
    return max(-limit, min(limit, value))


class LayoutGenerator:
    """
    Resolve final poses for the furniture of one room.

    Typical workflow::

        gen = LayoutGenerator(room, load_rule_book(), identity_profile=profile)
        result = gen.generate(items)

    A generator keeps no state between calls to :meth:`generate`; each run
    builds its own placed-item list.
    """

    def __init__(
        self,
        room: Room,
        rule_book: RuleBook,
        identity_profile: Optional[IdentityProfile] = None,
        preserve_detected_positions: bool = False,
        rng: Optional[np.random.Generator] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        """
        Parameters
        ----------
        room : Room
            Room extents in feet plus its doors and windows.
        rule_book : RuleBook
            Placement, stacking and lookup tables (see ``loaders``).
        identity_profile : IdentityProfile, optional
            When given, the items it implies are added before placement.
        preserve_detected_positions : bool
            Use an item's detected pose as its target instead of its zone.
        rng : numpy.random.Generator, optional
            Randomness for the last-resort collision fallback.
        clock : callable, optional
            Time source for identity item ids.
        """
        self.room = room
        self.rule_book = rule_book
        self.identity_profile = identity_profile
        self.preserve_detected_positions = preserve_detected_positions
        self.rng = rng
        self.clock = clock

        self._zone_handlers = {
            Zone.FLOOR_COVERING: self._place_floor_covering,
            Zone.ON_TOP: self._place_on_top,
            Zone.NEAR_WINDOW: self._place_near_window,
            Zone.WALL: self._place_on_wall,
            Zone.CENTER: self._place_center,
            Zone.CORNER: self._place_in_corner,
            Zone.BESIDE: self._place_beside,
            Zone.FLOATING: self._place_floating,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate(self, items: Sequence[Item]) -> LayoutResult:
        """Place *items* (plus identity items) and return the annotated layout."""
        working = list(items)
        identity_items: List[Item] = []
        if self.identity_profile is not None:
            kwargs = {"clock": self.clock} if self.clock else {}
            identity_items = expand_identity_items(
                self.identity_profile, self.rule_book, working, **kwargs)
            working.extend(identity_items)

        ordered = self.sort_items(working)
        placed: List[PlacedItem] = []
        output: List[dict] = []

        for item in ordered:
            rule = resolve_rule(item.label, self.rule_book)
            record = self._place_item(item, rule, placed, len(ordered))
            placed.append(record)
            output.append(self._annotate(item, record))

        fallbacks = sum(1 for p in placed if p.used_random_fallback)
        summary = {
            "total_objects": len(output),
            "identity_items_added": len(identity_items),
            "windows_considered": len(self.room.windows),
            "doors_considered": len(self.room.doors),
            "random_fallbacks": fallbacks,
            "room_dimensions": self.room.to_dict(),
        }
        logger.info(
            f"Layout for {self.room.length:.1f}x{self.room.width:.1f} ft room: "
            f"{len(output)} items ({len(identity_items)} from identity), "
            f"{fallbacks} random fallbacks"
        )
        return LayoutResult(items=output, placed=placed, summary=summary,
                            audit=audit_layout(placed, self.room))

    def sort_items(self, items: Sequence[Item]) -> List[Item]:
        """Zone priority first, then larger footprints first (stable)."""
        return sorted(
            items,
            key=lambda item: (resolve_rule(item.label, self.rule_book).priority,
                              -item.footprint_area),
        )

    # ------------------------------------------------------------------
    # Per-item pipeline
    # ------------------------------------------------------------------

    def _place_item(self, item: Item, rule: PlacementRule,
                    placed: List[PlacedItem], n_items: int) -> PlacedItem:
        dims = item.dims
        label = item.label.lower()
        is_floor_covering = rule.zone == Zone.FLOOR_COVERING
        is_on_top = rule.zone == Zone.ON_TOP

        if (self.preserve_detected_positions and item.position is not None
                and not item.is_identity_item
                and not is_on_top and not is_floor_covering):
            pos = item.position
            target = Target(pos.x, pos.z, pos.rotation, y=pos.y)
        else:
            target = self._zone_handlers[rule.zone](label, dims, rule, placed, n_items)

        x, z = target.x, target.z
        used_random = False
        if not is_on_top and not is_floor_covering:
            x, z = self._clamp_to_room(x, z, dims)
            result = search_free_position(
                x, z, dims.length, dims.width, placed, rule.min_spacing,
                self.room.length, self.room.width, rng=self.rng,
            )
            x, z, used_random = result.x, result.z, result.used_random_fallback

        if not target.supported and not is_floor_covering:
            nudged_x = self._avoid_doors(x, z)
            if nudged_x != x:
                x, z = self._clamp_to_room(nudged_x, z, dims)

        rotation = target.rotation
        if rule.facing == Facing.TOWARD_RELATED:
            related = self._nearest_related(x, z, rule.near_to, placed)
            if related is not None:
                rotation = _facing_towards(x, z, related.x, related.z)

        logger.debug(
            f"Placed {item.label} ({rule.zone.value}) at "
            f"({x:.2f}, {target.y:.2f}, {z:.2f}) rot {rotation:.2f}"
        )
        return PlacedItem(
            id=item.id, x=x, y=target.y, z=z,
            length=dims.length, width=dims.width, height=dims.height,
            label=label, rotation=rotation,
            is_floor_covering=is_floor_covering,
            used_random_fallback=used_random,
        )

    def _clamp_to_room(self, x: float, z: float, dims: Dimensions) -> Tuple[float, float]:
        max_x = max(0.0, self.room.half_length - dims.length / 2 - WALL_PADDING)
        max_z = max(0.0, self.room.half_width - dims.width / 2 - WALL_PADDING)
        return _clamp(x, max_x), _clamp(z, max_z)

    def _avoid_doors(self, x: float, z: float) -> float:
        """Single +x nudge per door whose clearance box contains the point."""
        for door in self.room.doors:
            half = door.width / 2 + DOOR_SIDE_CLEARANCE
            if door.x - half < x < door.x + half and door.z - DOOR_DEPTH < z < door.z + DOOR_DEPTH:
                logger.debug(f"Nudging item at ({x:.1f}, {z:.1f}) away from door at "
                             f"({door.x:.1f}, {door.z:.1f})")
                x += DOOR_NUDGE
        return x

    @staticmethod
    def _nearest_related(x: float, z: float, near_to: Sequence[str],
                         placed: Sequence[PlacedItem]) -> Optional[PlacedItem]:
        matches = [p for p in placed
                   if not p.is_floor_covering and any(k in p.label for k in near_to)]
        if not matches:
            return None
        return min(matches, key=lambda p: (p.x - x) ** 2 + (p.z - z) ** 2)

    @staticmethod
    def _first_placed(key: str, placed: Sequence[PlacedItem]) -> Optional[PlacedItem]:
        for p in placed:
            if not p.is_floor_covering and key in p.label:
                return p
        return None

    def _annotate(self, item: Item, record: PlacedItem) -> dict:
        data = dict(item.extra)
        data.update({
            "id": item.id,
            "label": item.label,
            "category": item.category,
            "dimensions": item.dims.to_dict(),
            "detected_color": item.detected_color,
            "material": item.material,
            "style": item.style,
            "confidence": item.confidence,
            "position": record.pose.to_dict(),
            "model_url": model_url_for(item.label, self.rule_book),
            "generation_type": "procedural",
            "is_identity_item": item.is_identity_item,
            "used_random_fallback": record.used_random_fallback,
        })
        return data

    # ------------------------------------------------------------------
    # Wall geometry
    # ------------------------------------------------------------------

    def wall_slot(self, wall: str, dims: Dimensions, wall_offset: float) -> Tuple[float, float]:
        """Centre of an item standing against *wall*, midway along it."""
        inset_z = self.room.half_width - dims.width / 2 - WALL_PADDING - wall_offset
        inset_x = self.room.half_length - dims.length / 2 - WALL_PADDING - wall_offset
        if wall == "back":
            return 0.0, -inset_z
        if wall == "front":
            return 0.0, inset_z
        if wall == "left":
            return -inset_x, 0.0
        return inset_x, 0.0

    def window_wall(self, window: Window) -> str:
        """Wall a window sits in, inferred from its position when not named."""
        wall = normalize_wall(window.wall)
        if wall:
            return wall
        rel_x = abs(window.x) / self.room.half_length
        rel_z = abs(window.z) / self.room.half_width
        if rel_z >= rel_x:
            return "back" if window.z <= 0 else "front"
        return "left" if window.x <= 0 else "right"

    # ------------------------------------------------------------------
    # Zone handlers
    # ------------------------------------------------------------------

    def _place_floor_covering(self, label, dims, rule, placed, n_items) -> Target:
        return Target(0.0, 0.0, 0.0)

    def _place_on_top(self, label, dims, rule, placed, n_items) -> Target:
        support = find_support(label, placed, self.rule_book)
        if support is not None:
            pose = stacked_pose(support)
            return Target(pose.x, pose.z, pose.rotation, y=pose.y, supported=True)
        logger.debug(f"No support for {label}; resting on front wall shelf")
        x, z = self.wall_slot("front", dims, rule.wall_offset)
        return Target(x, z, WALL_FACING["front"], y=SHELF_HEIGHT)

    def _place_near_window(self, label, dims, rule, placed, n_items) -> Target:
        windows = list(self.room.windows)
        preferred = normalize_wall(rule.wall)
        if preferred and self.room.windows_on(preferred):
            windows = self.room.windows_on(preferred)
        if not windows:
            x, z = self.wall_slot("left", dims, rule.wall_offset)
            return Target(x, z, WALL_FACING["left"])

        window = windows[0]
        wall = self.window_wall(window)
        if wall in ("back", "front"):
            inset = self.room.half_width - dims.width / 2 - WINDOW_CLEARANCE
            z = -inset if wall == "back" else inset
            return Target(window.x, z, WALL_FACING[wall])
        inset = self.room.half_length - dims.length / 2 - WINDOW_CLEARANCE
        x = -inset if wall == "left" else inset
        return Target(x, window.z, WALL_FACING[wall])

    def _place_on_wall(self, label, dims, rule, placed, n_items) -> Target:
        wall = (rule.wall or "back").lower()

        if "bed" in label and self.room.windows and self.identity_profile is not None \
                and self.identity_profile.seeks_natural_light:
            window = self.room.windows[0]
            opposite = OPPOSITE_WALL[self.window_wall(window)]
            x, z = self.wall_slot(opposite, dims, rule.wall_offset)
            return Target(x, z, _facing_towards(x, z, window.x, window.z))

        if wall in OPEN_WALL_PREFERENCES or wall not in WALL_FACING:
            for candidate in WALL_ORDER:
                x, z = self.wall_slot(candidate, dims, rule.wall_offset)
                if not overlaps(x, z, dims.length, dims.width, placed, rule.min_spacing):
                    return Target(x, z, WALL_FACING[candidate])
            _, z = self.wall_slot("back", dims, rule.wall_offset)
            x = (len(placed) % 3 - 1) * (self.room.length / 4)
            return Target(x, z, WALL_FACING["back"])

        x, z = self.wall_slot(wall, dims, rule.wall_offset)
        if wall in ("back", "front"):
            occupants = [p for p in placed
                         if not p.is_floor_covering and abs(p.z - z) < WALL_BAND]
        else:
            occupants = [p for p in placed
                         if not p.is_floor_covering and abs(p.x - x) < WALL_BAND]
        n = len(occupants)
        if n:
            offset = n * (dims.length + WALL_SPREAD_GAP) * (1 if n % 2 == 0 else -1)
            if wall in ("back", "front"):
                x = offset
            else:
                z = offset
        return Target(x, z, WALL_FACING[wall])

    def _place_center(self, label, dims, rule, placed, n_items) -> Target:
        if "coffee" in label:
            sofas = [p for p in placed
                     if not p.is_floor_covering and any(s in p.label for s in SOFA_LABELS)]
            if sofas:
                sofa = min(sofas, key=lambda p: p.x ** 2 + p.z ** 2)
                fx, fz = _forward(sofa.rotation)
                gap = sofa.width / 2 + dims.width / 2 + COFFEE_TABLE_GAP
                return Target(sofa.x + fx * gap, sofa.z + fz * gap, sofa.rotation)
        elif "dining" in label:
            return Target(0.0, -self.room.half_width / 3, 0.0)
        return Target(0.0, 0.0, 0.0)

    def _place_in_corner(self, label, dims, rule, placed, n_items) -> Target:
        cx = self.room.half_length - dims.length / 2 - WALL_PADDING
        cz = self.room.half_width - dims.width / 2 - WALL_PADDING
        corners = [(-cx, -cz), (cx, -cz), (-cx, cz), (cx, cz)]
        x, z = corners[0]
        for corner in corners:
            if not overlaps(corner[0], corner[1], dims.length, dims.width,
                            placed, rule.min_spacing):
                x, z = corner
                break
        return Target(x, z, _facing_towards(x, z, 0.0, 0.0))

    def _place_beside(self, label, dims, rule, placed, n_items) -> Target:
        for key in rule.near_to:
            neighbour = self._first_placed(key, placed)
            if neighbour is None:
                continue
            gap = neighbour.length / 2 + dims.length / 2 + BESIDE_GAP
            for side_x in (neighbour.x + gap, neighbour.x - gap):
                if not overlaps(side_x, neighbour.z, dims.length, dims.width,
                                placed, rule.min_spacing):
                    return Target(side_x, neighbour.z, neighbour.rotation)
        x, z = self.wall_slot("right", dims, rule.wall_offset)
        return Target(x, z, WALL_FACING["right"])

    def _place_floating(self, label, dims, rule, placed, n_items) -> Target:
        for key in rule.near_to:
            neighbour = self._first_placed(key, placed)
            if neighbour is None:
                continue
            fx, fz = _forward(neighbour.rotation)
            gap = neighbour.width / 2 + dims.width / 2 + FLOATING_GAP
            rotation = math.remainder(neighbour.rotation + math.pi, 2 * math.pi)
            return Target(neighbour.x + fx * gap, neighbour.z + fz * gap, rotation)

        grid = math.ceil(math.sqrt(max(n_items, 1)))
        idx = sum(1 for p in placed if not p.is_floor_covering)
        x = (idx % grid - grid / 2) * (self.room.length / (grid + 1))
        z = (idx // grid - grid / 2) * (self.room.width / (grid + 1))
        return Target(x, z, 0.0)
