"""
Load the furniture rule tables and room presets from JSON.

Tables are parsed once per path and cached; the resulting :class:`RuleBook`
is passed explicitly to the engine rather than read from module globals.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .room_model import Dimensions
from .rules import (
    DEFAULT_RULE, ActivityItem, Facing, PlacementRule, RuleBook, StackingRule, Zone,
)

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent / "data"
DEFAULT_RULES_PATH = DATA_DIR / "furniture_rules.json"
DEFAULT_PRESETS_PATH = DATA_DIR / "room_presets.json"


class RuleBookError(ValueError):
    """Raised when a rule file is missing or malformed."""


def _read_json(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise RuleBookError(f"Rule file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise RuleBookError(f"Rule file {path} is not valid JSON: {e}") from e


def _parse_rule(data: Dict[str, Any], key: str = "") -> PlacementRule:
    try:
        zone = Zone(data["zone"])
        facing = Facing(data.get("facing", Facing.FORWARD.value))
    except (KeyError, ValueError) as e:
        raise RuleBookError(f"Bad placement rule {data!r}: {e}") from e
    return PlacementRule(
        key=data.get("key", key).lower(),
        zone=zone,
        wall=data.get("wall"),
        near_to=tuple(n.lower() for n in data.get("near_to", [])),
        min_spacing=float(data.get("min_spacing", 1.5)),
        wall_offset=float(data.get("wall_offset", 0.3)),
        facing=facing,
        stackable=bool(data.get("stackable", zone == Zone.ON_TOP)),
    )


def _parse_dims(values, where: str) -> Dimensions:
    if not isinstance(values, (list, tuple)) or len(values) != 3:
        raise RuleBookError(f"{where}: expected [length, width, height], got {values!r}")
    return Dimensions(*(float(v) for v in values))


def parse_rule_book(data: Dict[str, Any]) -> RuleBook:
    """Build a :class:`RuleBook` from the decoded JSON document."""
    if not isinstance(data.get("placement_rules"), list):
        raise RuleBookError("'placement_rules' must be a list")

    placement = tuple(_parse_rule(r) for r in data["placement_rules"])
    default_rule = DEFAULT_RULE
    if "default_rule" in data:
        default_rule = _parse_rule(data["default_rule"])

    default_dims = {
        label: _parse_dims(dims, f"default_dimensions[{label}]")
        for label, dims in data.get("default_dimensions", {}).items()
    }
    fallback = _parse_dims(data.get("fallback_dimensions", [1, 1, 2]), "fallback_dimensions")

    section = "stacking_rules"
    try:
        stacking = tuple(
            StackingRule(key=r["key"].lower(),
                         supports=tuple(s.lower() for s in r.get("supports", [])))
            for r in data.get("stacking_rules", [])
        )
        section = "activity_items"
        activities = {
            name.lower(): tuple(ActivityItem(label=e["label"], key=e.get("key", e["label"]))
                                for e in entries)
            for name, entries in data.get("activity_items", {}).items()
        }
        section = "colors"
        colors = tuple((c["keyword"], c["color"]) for c in data.get("colors", []))
        section = "materials"
        materials = tuple((m["keyword"], m["material"]) for m in data.get("materials", []))
        section = "categories"
        categories = tuple((c["category"], tuple(c["keywords"]))
                           for c in data.get("categories", []))
        section = "model_assets"
        assets = tuple((a["key"], tuple(a["urls"])) for a in data.get("model_assets", []))
    except (KeyError, TypeError, AttributeError) as e:
        raise RuleBookError(f"Bad entry in '{section}': {e!r}") from e

    return RuleBook(
        placement_rules=placement,
        stacking_rules=stacking,
        default_rule=default_rule,
        default_dimensions=default_dims,
        fallback_dimensions=fallback,
        colors=colors,
        default_color=data.get("default_color", "#808080"),
        materials=materials,
        default_material=data.get("default_material", "wood"),
        categories=categories,
        activity_items=activities,
        model_assets=assets,
    )


@lru_cache(maxsize=8)
def _load_rule_book_cached(path: str) -> RuleBook:
    book = parse_rule_book(_read_json(path))
    logger.info(f"Loaded {len(book.placement_rules)} placement rules, "
                f"{len(book.stacking_rules)} stacking rules from {path}")
    return book


def load_rule_book(path: Optional[Union[str, Path]] = None) -> RuleBook:
    """Load (once) the rule book at *path*, defaulting to the bundled tables."""
    return _load_rule_book_cached(str(Path(path or DEFAULT_RULES_PATH).resolve()))


@lru_cache(maxsize=1)
def load_room_presets(path: Optional[str] = None) -> Dict[str, Any]:
    """Default furniture sets per room type, in the same shape as a layout request."""
    return _read_json(path or DEFAULT_PRESETS_PATH)
