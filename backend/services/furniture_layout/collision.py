"""
Footprint collision test and free-position search.

Footprints are axis-aligned rectangles padded by the candidate's minimum
spacing. When a target collides, a fixed ring of offsets around it is tried
in order; only when every ring candidate fails does the search draw random
positions, which is the single non-deterministic path of the engine.
"""

import logging
from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from .room_model import PlacedItem

logger = logging.getLogger(__name__)

SEARCH_WALL_PADDING = 0.5     # ft
FALLBACK_WALL_PADDING = 1.0   # ft
FALLBACK_SPREAD = 1.5
RING_RADII = 10
RING_STEP = 1.5               # ft per radius
RANDOM_ATTEMPTS = 20

# Rectangles that only touch do not overlap
_EPS = 1e-9

# Offsets emitted per radius, in order: axes, diagonals, shortened diagonals
_RING_DIRECTIONS = np.array([
    (1.0, 0.0), (-1.0, 0.0), (0.0, 1.0), (0.0, -1.0),
    (1.0, 1.0), (-1.0, 1.0), (1.0, -1.0), (-1.0, -1.0),
    (0.7, 0.7), (-0.7, 0.7), (0.7, -0.7), (-0.7, -0.7),
])


def ring_offsets(radii: int = RING_RADII, step: float = RING_STEP) -> List[Tuple[float, float]]:
    """Candidate (dx, dz) offsets ordered by radius, then direction."""
    rings = np.concatenate([_RING_DIRECTIONS * (step * r) for r in range(1, radii + 1)])
    return [(float(dx), float(dz)) for dx, dz in rings]


RING_OFFSETS = ring_offsets()


class SearchResult(NamedTuple):
    x: float
    z: float
    used_random_fallback: bool = False


def overlaps(
    x: float,
    z: float,
    length: float,
    width: float,
    placed: Sequence[PlacedItem],
    min_spacing: float,
    is_floor_covering: bool = False,
) -> bool:
    """
    True when the padded footprint at (x, z) overlaps any placed footprint.

    Floor coverings never collide, neither as the candidate nor as an
    obstacle.
    """
    if is_floor_covering:
        return False
    for item in placed:
        if item.is_floor_covering:
            continue
        min_dx = length / 2 + item.length / 2 + min_spacing
        min_dz = width / 2 + item.width / 2 + min_spacing
        if abs(x - item.x) < min_dx - _EPS and abs(z - item.z) < min_dz - _EPS:
            return True
    return False


def search_free_position(
    target_x: float,
    target_z: float,
    length: float,
    width: float,
    placed: Sequence[PlacedItem],
    min_spacing: float,
    room_length: float,
    room_width: float,
    is_floor_covering: bool = False,
    rng: Optional[np.random.Generator] = None,
) -> SearchResult:
    """
    Find the collision-free position closest (in ring order) to the target.

    Returns the target itself when it is already free. ``rng`` is only
    consulted when the ring search is exhausted.
    """
    if is_floor_covering:
        return SearchResult(target_x, target_z)
    if not overlaps(target_x, target_z, length, width, placed, min_spacing):
        return SearchResult(target_x, target_z)

    max_x = room_length / 2 - length / 2 - SEARCH_WALL_PADDING
    max_z = room_width / 2 - width / 2 - SEARCH_WALL_PADDING
    for dx, dz in RING_OFFSETS:
        x = target_x + dx
        z = target_z + dz
        if abs(x) > max_x or abs(z) > max_z:
            continue
        if not overlaps(x, z, length, width, placed, min_spacing):
            return SearchResult(x, z)

    return _random_position(target_x, target_z, length, width, placed,
                            min_spacing, room_length, room_width, rng)


def find_free_position(
    target_x: float,
    target_z: float,
    length: float,
    width: float,
    placed: Sequence[PlacedItem],
    min_spacing: float,
    room_length: float,
    room_width: float,
    is_floor_covering: bool = False,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[float, float]:
    result = search_free_position(target_x, target_z, length, width, placed,
                                  min_spacing, room_length, room_width,
                                  is_floor_covering, rng)
    return result.x, result.z


def _random_position(target_x, target_z, length, width, placed, min_spacing,
                     room_length, room_width, rng) -> SearchResult:
    if rng is None:
        rng = np.random.default_rng()
    max_x = max(0.0, room_length / 2 - length / 2 - FALLBACK_WALL_PADDING)
    max_z = max(0.0, room_width / 2 - width / 2 - FALLBACK_WALL_PADDING)

    x = z = 0.0
    free = False
    for _ in range(RANDOM_ATTEMPTS):
        x = float((rng.random() - 0.5) * FALLBACK_SPREAD * max_x)
        z = float((rng.random() - 0.5) * FALLBACK_SPREAD * max_z)
        if not overlaps(x, z, length, width, placed, min_spacing):
            free = True
            break

    logger.warning(
        f"Ring search exhausted near ({target_x:.1f}, {target_z:.1f}) for "
        f"{length:.1f}x{width:.1f} ft footprint; random fallback at "
        f"({x:.1f}, {z:.1f}){'' if free else ' still colliding'}"
    )
    return SearchResult(x, z, True)
