"""
Identity-to-item expansion.

Turns the lifestyle answers of the identity quiz into extra furniture and
decor that the detected room does not already contain: activity gear,
hosting seating, window treatments, decor layers and visible tech.
"""

import logging
import re
import time
from typing import Callable, List, Sequence

from .room_model import Dimensions, IdentityProfile, Item, Pose
from .rules import RuleBook

logger = logging.getLogger(__name__)

DENSE = "dense"
BALANCED = "balanced"
SPARSE = "sparse"


def _derived_density(profile: IdentityProfile) -> str:
    chaos = (profile.chaos_level or "").lower()
    empty = (profile.empty_space_feeling or "").lower()
    if chaos == "maximalist" or empty == "boring":
        return DENSE
    if chaos == "minimalist" or empty == "calming":
        return SPARSE
    return BALANCED


def furnishing_density(profile: IdentityProfile) -> str:
    return (profile.furnishing_density or _derived_density(profile)).lower()


def decoration_density(profile: IdentityProfile) -> str:
    return (profile.decoration_density or _derived_density(profile)).lower()


def _keyword_lookup(text: str, table, default: str) -> str:
    for keyword, value in table:
        if keyword in text:
            return value
    return default


def category_for(label: str, rule_book: RuleBook) -> str:
    lower = label.lower()
    for category, keywords in rule_book.categories:
        if any(k in lower for k in keywords):
            return category
    return "furniture"


def dimensions_for(label: str, rule_book: RuleBook) -> Dimensions:
    lower = label.lower()
    if lower in rule_book.default_dimensions:
        return rule_book.default_dimensions[lower]
    for key, dims in rule_book.default_dimensions.items():
        if key in lower:
            return dims
    return rule_book.fallback_dimensions


def _slug(label: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", label.lower()).strip("-")


def expand_identity_items(
    profile: IdentityProfile,
    rule_book: RuleBook,
    existing: Sequence[Item] = (),
    clock: Callable[[], float] = time.time,
) -> List[Item]:
    """
    Generate the items implied by *profile* that *existing* does not cover.

    Only the new items are returned. An item is skipped when its dedup key
    is contained in any label accumulated so far (existing plus generated).
    """
    labels = [item.label for item in existing]
    generated: List[Item] = []
    stamp = int(clock() * 1000)

    default_material = rule_book.default_material
    if (profile.material_preference or "").lower() == "futurist":
        default_material = "metal"

    def add(label: str, key: str, source: str):
        if any(key in existing_label for existing_label in labels):
            logger.debug(f"Identity item '{label}' skipped: '{key}' already present")
            return
        generated.append(Item(
            id=f"identity-{_slug(label)}-{stamp}-{len(generated)}",
            label=label,
            category=category_for(label, rule_book),
            dimensions=dimensions_for(label, rule_book),
            position=Pose(0.0, 0.0, 0.0, 0.0),
            detected_color=_keyword_lookup(f"{label} {source}".lower(),
                                           rule_book.colors, rule_book.default_color),
            material=_keyword_lookup(label.lower(), rule_book.materials, default_material),
            confidence=1.0,
            is_identity_item=True,
            extra={"identity_source": source},
        ))
        labels.append(label)

    per_activity = 2 if furnishing_density(profile) == DENSE else 1
    for activity in profile.activities:
        entries = rule_book.activity_items.get(activity.lower())
        if not entries:
            logger.debug(f"No identity items for activity '{activity}'")
            continue
        for entry in entries[:per_activity]:
            add(entry.label, entry.key, activity.lower())

    if (profile.social_style or "").lower() == "extrovert" or profile.is_host:
        add("ottoman", "ottoman", "social")

    if profile.seeks_natural_light:
        add("sheer curtains", "curtain", "light")
    elif profile.seeks_darkness:
        add("blackout curtains", "curtain", "dark")

    if decoration_density(profile) == DENSE:
        add("plant", "plant", "decor")
        add("wall art", "wall art", "decor")
        add("vase", "vase", "decor")

    if (profile.tech_visibility or "").lower() == "visible":
        add("rgb light strip", "rgb", "tech")

    if generated:
        logger.info(f"Identity profile added {len(generated)} items: "
                    f"{', '.join(i.label for i in generated)}")
    return generated
