"""
Footprint validation utilities.

Builds Shapely rectangles for placed items so a finished layout can be
checked for overlapping footprints and items poking through the walls.
"""

from typing import Dict, List, Sequence, Tuple

from shapely.geometry import Polygon, box

from .room_model import PlacedItem, Room


def footprint(item: PlacedItem, padding: float = 0.0) -> Polygon:
    """Axis-aligned footprint of *item*, grown by *padding* on every side."""
    half_l = item.length / 2 + padding
    half_w = item.width / 2 + padding
    return box(item.x - half_l, item.z - half_w, item.x + half_l, item.z + half_w)


def room_polygon(room: Room) -> Polygon:
    return box(-room.half_length, -room.half_width, room.half_length, room.half_width)


def detect_overlaps(placed: Sequence[PlacedItem],
                    tolerance: float = 0.01) -> List[Tuple[str, str]]:
    """
    Return (id_a, id_b) pairs whose footprints overlap.

    Floor coverings and stacked items (y > 0) are left out: they share
    footprint with other items by construction. Footprints that only touch
    (zero-area intersection) are **not** considered overlapping.

    Parameters
    ----------
    placed : sequence of PlacedItem
        Items in placement order.
    tolerance : float
        Minimum intersection area to count as an overlap (sq ft).
    """
    grounded = [p for p in placed if not p.is_floor_covering and p.y <= 0]
    shapes = [footprint(p) for p in grounded]
    pairs = []
    for i in range(len(grounded)):
        for j in range(i + 1, len(grounded)):
            if shapes[i].intersection(shapes[j]).area > tolerance:
                pairs.append((grounded[i].id, grounded[j].id))
    return pairs


def out_of_bounds(placed: Sequence[PlacedItem], room: Room,
                  tolerance: float = 0.01) -> List[str]:
    """Ids of items whose footprint extends past the room walls."""
    walls = room_polygon(room)
    result = []
    for p in placed:
        shape = footprint(p)
        if shape.difference(walls).area > tolerance:
            result.append(p.id)
    return result


def audit_layout(placed: Sequence[PlacedItem], room: Room) -> Dict[str, object]:
    """Overlap and bounds report for a finished layout."""
    overlap_pairs = detect_overlaps(placed)
    outside = out_of_bounds(placed, room)
    return {
        "overlaps": [list(pair) for pair in overlap_pairs],
        "out_of_bounds": outside,
        "valid": not overlap_pairs and not outside,
    }
