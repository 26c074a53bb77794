"""Resolve which placed item a stackable item rests on."""

from typing import Optional, Sequence

from .room_model import PlacedItem, Pose
from .rules import RuleBook, resolve_stacking_rule


def find_support(label: str, placed: Sequence[PlacedItem],
                 rule_book: RuleBook) -> Optional[PlacedItem]:
    """
    Return the support for *label*, or None.

    Support types are tried in the stacking rule's order; for each, the first
    placed non-floor-covering item whose label contains it is chosen.
    """
    rule = resolve_stacking_rule(label, rule_book)
    if rule is None:
        return None
    for support_type in rule.supports:
        for item in placed:
            if not item.is_floor_covering and support_type in item.label:
                return item
    return None


def stacked_pose(support: PlacedItem) -> Pose:
    """Pose on top of *support*: same x/z and rotation, resting on its top surface."""
    return Pose(support.x, support.top, support.z, support.rotation)
