"""
Furniture Layout Engine.

Rule-driven sequential placement of detected and identity-generated
furniture inside a rectangular room. All lengths are feet.
"""

from .generator import LayoutGenerator, LayoutResult
from .identity import expand_identity_items
from .loaders import RuleBookError, load_room_presets, load_rule_book
from .room_model import Dimensions, Door, IdentityProfile, Item, PlacedItem, Pose, Room, Window
from .rules import Facing, PlacementRule, RuleBook, Zone, resolve_rule

__all__ = [
    "LayoutGenerator",
    "LayoutResult",
    "expand_identity_items",
    "RuleBookError",
    "load_rule_book",
    "load_room_presets",
    "Dimensions",
    "Door",
    "IdentityProfile",
    "Item",
    "PlacedItem",
    "Pose",
    "Room",
    "Window",
    "Facing",
    "PlacementRule",
    "RuleBook",
    "Zone",
    "resolve_rule",
]
