"""
Sequential placement, zone by zone.

Rooms are 20 x 16 ft unless stated otherwise; the back wall is at z = -8.
"""

import math

import numpy as np
import pytest

from services.furniture_layout import (
    Door, IdentityProfile, LayoutGenerator, Pose, Room, Window, resolve_rule,
)
from services.furniture_layout.collision import SEARCH_WALL_PADDING
from services.furniture_layout.rules import Zone


def _by_label(result, label):
    return [item for item in result.items if item["label"] == label]


def _pos(item):
    p = item["position"]
    return p["x"], p["y"], p["z"], p["rotation"]


def _living_room(make_item):
    return [
        make_item("sofa", 7, 3, 2.5),
        make_item("coffee table", 4, 2, 1.4),
        make_item("tv stand", 5, 1.5, 2),
        make_item("television", 4, 0.3, 2.5),
        make_item("armchair", 3, 3, 3),
        make_item("floor lamp", 1.2, 1.2, 5.5),
        make_item("side table", 1.5, 1.5, 2),
        make_item("bookshelf", 3.5, 1, 6),
        make_item("area rug", 10, 7, 0.05),
        make_item("floor plant", 1.8, 1.8, 5),
        make_item("loveseat", 4.5, 3, 2.8),
        make_item("desk", 4.5, 2, 2.5),
        make_item("office chair", 2, 2, 3.5),
    ]


# ====================================================================
# Worked scenarios
# ====================================================================

def test_sofa_goes_against_back_wall(room, rule_book, make_item, forbidden_rng):
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("sofa", 7, 3, 2.5)])
    x, y, z, rotation = _pos(result.items[0])
    # -(8 - 1.5 half depth - 1.0 wall padding - 0.5 sofa wall offset)
    assert z == pytest.approx(-5.0)
    assert x == 0.0
    assert y == 0.0
    assert rotation == 0.0


def test_tv_rests_on_its_stand(room, rule_book, make_item, forbidden_rng):
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("tv stand", 5, 1.5, 2), make_item("tv", 4, 0.5, 2.5)])
    stand, tv = _by_label(result, "tv stand")[0], _by_label(result, "tv")[0]
    assert tv["position"]["y"] == pytest.approx(2.0)
    assert tv["position"]["x"] == stand["position"]["x"]
    assert tv["position"]["z"] == stand["position"]["z"]
    assert tv["position"]["rotation"] == pytest.approx(math.pi, abs=1e-5)


def test_nightstands_fill_right_then_left_of_bed(room, rule_book, make_item, forbidden_rng):
    bed = make_item("bed", 6.5, 7, 2.5, position=Pose(0.0, 0.0, -3.0, 0.0))
    items = [bed, make_item("nightstand", 1.5, 1.5, 2), make_item("nightstand", 1.5, 1.5, 2)]
    result = LayoutGenerator(room, rule_book, preserve_detected_positions=True,
                             rng=forbidden_rng).generate(items)
    first, second = _by_label(result, "nightstand")
    offset = 6.5 / 2 + 1.5 / 2 + 0.3
    assert first["position"]["x"] == pytest.approx(offset)
    assert first["position"]["z"] == pytest.approx(-3.0)
    assert second["position"]["x"] == pytest.approx(-offset)
    assert second["position"]["z"] == pytest.approx(-3.0)


def test_item_in_front_of_door_is_nudged(rule_book, make_item, forbidden_rng):
    room = Room(length=20, width=16, doors=[Door(x=-8, z=0, width=3)])
    item = make_item("box", position=Pose(-7.0, 0.0, 1.0, 0.0))
    result = LayoutGenerator(room, rule_book, preserve_detected_positions=True,
                             rng=forbidden_rng).generate([item])
    x, _, z, _ = _pos(result.items[0])
    assert x == pytest.approx(-3.0)
    assert z == pytest.approx(1.0)
    assert result.summary["doors_considered"] == 1


def test_visible_tech_adds_rgb_strip_to_layout(room, rule_book, make_item, forbidden_rng):
    profile = IdentityProfile(tech_visibility="visible")
    result = LayoutGenerator(room, rule_book, identity_profile=profile,
                             rng=forbidden_rng).generate([make_item("sofa", 7, 3, 2.5)])
    strips = _by_label(result, "rgb light strip")
    assert len(strips) == 1
    assert strips[0]["detected_color"] == "#00FF00"
    assert strips[0]["is_identity_item"] is True
    assert result.summary["identity_items_added"] == 1
    assert result.summary["total_objects"] == 2


# ====================================================================
# Invariants
# ====================================================================

def test_floor_covering_stays_centred(room, rule_book, make_item, forbidden_rng):
    rug = make_item("area rug", 10, 7, 0.05, position=Pose(3.0, 0.0, 2.0, 1.0))
    result = LayoutGenerator(room, rule_book, preserve_detected_positions=True,
                             rng=forbidden_rng).generate([make_item("sofa", 7, 3, 2.5), rug])
    assert _pos(_by_label(result, "area rug")[0]) == (0.0, 0.0, 0.0, 0.0)
    # The rug is sorted first and the sofa still lands on its wall slot
    assert result.items[0]["label"] == "area rug"
    assert _by_label(result, "sofa")[0]["position"]["z"] == pytest.approx(-5.0)


def test_items_stay_inside_room(room, rule_book, make_item, seeded_rng):
    result = LayoutGenerator(room, rule_book, rng=seeded_rng).generate(_living_room(make_item))
    for placed in result.placed:
        if resolve_rule(placed.label, rule_book).zone == Zone.ON_TOP:
            continue
        assert abs(placed.x) <= room.half_length - placed.length / 2 - SEARCH_WALL_PADDING + 1e-9
        assert abs(placed.z) <= room.half_width - placed.width / 2 - SEARCH_WALL_PADDING + 1e-9


def test_padded_footprints_do_not_overlap(room, rule_book, make_item, seeded_rng):
    result = LayoutGenerator(room, rule_book, rng=seeded_rng).generate(_living_room(make_item))
    grounded = [p for p in result.placed
                if not p.is_floor_covering
                and resolve_rule(p.label, rule_book).zone != Zone.ON_TOP]
    for i, earlier in enumerate(grounded):
        for later in grounded[i + 1:]:
            if earlier.used_random_fallback or later.used_random_fallback:
                continue
            spacing = resolve_rule(later.label, rule_book).min_spacing
            overlap_x = abs(earlier.x - later.x) < earlier.length / 2 + later.length / 2 + spacing - 1e-9
            overlap_z = abs(earlier.z - later.z) < earlier.width / 2 + later.width / 2 + spacing - 1e-9
            assert not (overlap_x and overlap_z), (earlier.label, later.label)
    if result.summary["random_fallbacks"] == 0:
        assert result.audit["valid"]


def test_layout_is_idempotent(room, rule_book, make_item):
    items = _living_room(make_item)
    first = LayoutGenerator(room, rule_book, rng=np.random.default_rng(1)).generate(items)
    second = LayoutGenerator(room, rule_book, rng=np.random.default_rng(1)).generate(items)
    assert first.items == second.items


def test_sort_by_zone_then_area(room, rule_book, make_item):
    items = [make_item("tv", 4, 0.5, 2.5), make_item("nightstand", 1.5, 1.5, 2),
             make_item("small shelf", 2, 1, 3), make_item("bookshelf", 3.5, 1, 6),
             make_item("rug", 8, 6, 0.05)]
    ordered = LayoutGenerator(room, rule_book).sort_items(items)
    assert [i.label for i in ordered] == ["rug", "bookshelf", "small shelf", "nightstand", "tv"]


# ====================================================================
# Zone handlers
# ====================================================================

def test_corner_items_take_free_corners_facing_centre(room, rule_book, make_item, forbidden_rng):
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("floor lamp", 1.2, 1.2, 5.5), make_item("armchair", 3, 3, 3)])
    x, _, z, rotation = _pos(_by_label(result, "armchair")[0])
    assert (x, z) == (pytest.approx(-7.5), pytest.approx(-5.5))
    assert rotation == pytest.approx(math.atan2(7.5, 5.5), abs=1e-5)
    lx, _, lz, _ = _pos(_by_label(result, "floor lamp")[0])
    assert (lx, lz) == (pytest.approx(8.4), pytest.approx(-6.4))


def test_coffee_table_in_front_of_sofa(room, rule_book, make_item, forbidden_rng):
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("coffee table", 4, 2, 1.4), make_item("sofa", 7, 3, 2.5)])
    x, _, z, rotation = _pos(_by_label(result, "coffee table")[0])
    # sofa at z = -5; 1.5 + 1.0 + 2.5 ft further into the room
    assert x == pytest.approx(0.0)
    assert z == pytest.approx(0.0)
    assert rotation == pytest.approx(0.0)


def test_dining_table_sits_toward_back_third(room, rule_book, make_item, forbidden_rng):
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("dining table", 6, 3.5, 2.5)])
    assert result.items[0]["position"]["z"] == pytest.approx(-8 / 3, abs=1e-4)


def test_dining_chair_faces_table(room, rule_book, make_item, forbidden_rng):
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("dining chair", 2, 2, 3), make_item("dining table", 6, 3.5, 2.5)])
    x, _, z, rotation = _pos(_by_label(result, "dining chair")[0])
    assert x == pytest.approx(0.0)
    assert z == pytest.approx(-8 / 3 + 1.75 + 1 + 2, abs=1e-4)
    assert abs(rotation) == pytest.approx(math.pi, abs=1e-5)


def test_desk_faces_room_from_window(rule_book, make_item, forbidden_rng):
    room = Room(length=20, width=16, windows=[Window(x=3, z=-8, wall="back")])
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("desk", 4.5, 2, 2.5)])
    x, _, z, rotation = _pos(result.items[0])
    assert (x, z) == (pytest.approx(3.0), pytest.approx(-(8 - 1 - 1.5)))
    assert rotation == 0.0
    assert result.summary["windows_considered"] == 1


def test_window_wall_is_inferred_from_position(rule_book, make_item, forbidden_rng):
    room = Room(length=20, width=16, windows=[Window(x=10, z=2)])
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("easel", 2.5, 2, 5.5)])
    x, _, z, rotation = _pos(result.items[0])
    assert (x, z) == (pytest.approx(10 - 1.25 - 1.5), pytest.approx(2.0))
    assert rotation == pytest.approx(-math.pi / 2, abs=1e-5)


def test_desk_without_windows_uses_left_wall(room, rule_book, make_item, forbidden_rng):
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("desk", 4.5, 2, 2.5)])
    x, _, z, rotation = _pos(result.items[0])
    assert (x, z) == (pytest.approx(-(10 - 2.25 - 1 - 0.5)), pytest.approx(0.0))
    assert rotation == pytest.approx(math.pi / 2, abs=1e-5)


def test_office_chair_faces_desk(room, rule_book, make_item, forbidden_rng):
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("office chair", 2, 2, 3.5), make_item("desk", 4.5, 2, 2.5)])
    x, _, z, rotation = _pos(_by_label(result, "office chair")[0])
    assert x == pytest.approx(-6.25 + 4.0)
    assert z == pytest.approx(0.0, abs=1e-6)
    assert rotation == pytest.approx(-math.pi / 2, abs=1e-5)


def test_light_seeking_bed_faces_window(rule_book, make_item, forbidden_rng):
    room = Room(length=20, width=16, windows=[Window(x=-10, z=2, wall="left")])
    profile = IdentityProfile(prefer_natural_light=True)
    result = LayoutGenerator(room, rule_book, identity_profile=profile,
                             rng=forbidden_rng).generate([make_item("bed", 6.5, 7, 2.5)])
    x, _, z, rotation = _pos(_by_label(result, "bed")[0])
    assert (x, z) == (pytest.approx(10 - 3.25 - 1 - 0.3), pytest.approx(0.0))
    assert rotation == pytest.approx(math.atan2(-10 - x, 2 - z), abs=1e-5)


def test_named_wall_spreads_occupants(room, rule_book, make_item, forbidden_rng):
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("dresser", 4.5, 1.5, 3), make_item("dresser", 4.5, 1.5, 3)])
    first, second = _by_label(result, "dresser")
    assert _pos(first)[0] == pytest.approx(10 - 2.25 - 1 - 0.3)
    assert _pos(first)[2] == pytest.approx(0.0)
    assert _pos(first)[3] == pytest.approx(-math.pi / 2, abs=1e-5)
    assert _pos(second)[0] == pytest.approx(_pos(first)[0])
    assert _pos(second)[2] == pytest.approx(-(4.5 + 1.5))


def test_open_wall_preference_starts_at_back(room, rule_book, make_item, forbidden_rng):
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("mirror", 3, 0.2, 4)])
    x, _, z, rotation = _pos(result.items[0])
    assert (x, z) == (0.0, pytest.approx(-(8 - 0.1 - 1 - 0.1)))
    assert rotation == 0.0


def test_unsupported_stacked_item_rests_on_front_shelf(room, rule_book, make_item,
                                                       forbidden_rng):
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("table lamp", 0.8, 0.8, 1.8)])
    x, y, z, rotation = _pos(result.items[0])
    assert (x, y, z) == (0.0, 2.0, pytest.approx(8 - 0.4 - 1 - 0.3))
    assert rotation == pytest.approx(math.pi, abs=1e-5)


def test_detected_pose_is_ignored_for_stacked_items(room, rule_book, make_item, forbidden_rng):
    items = [make_item("tv stand", 5, 1.5, 2, position=Pose(0.0, 0.0, 5.0, math.pi)),
             make_item("tv", 4, 0.5, 2.5, position=Pose(-4.0, 3.0, 0.0, 0.0))]
    result = LayoutGenerator(room, rule_book, preserve_detected_positions=True,
                             rng=forbidden_rng).generate(items)
    tv = _by_label(result, "tv")[0]
    assert (tv["position"]["x"], tv["position"]["y"], tv["position"]["z"]) == (0.0, 2.0, 5.0)


def test_unrelated_floating_items_use_grid(room, rule_book, make_item, forbidden_rng):
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("box")])
    x, _, z, _ = _pos(result.items[0])
    assert (x, z) == (pytest.approx(-5.0), pytest.approx(-4.0))


def test_floating_item_without_placed_partner_uses_grid(room, rule_book, make_item,
                                                        forbidden_rng):
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("office chair", 2, 2, 3.5)])
    assert _pos(result.items[0]) == (pytest.approx(-5.0), 0.0, pytest.approx(-4.0), 0.0)


def test_beside_item_without_neighbour_uses_right_wall(room, rule_book, make_item,
                                                       forbidden_rng):
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("nightstand", 2, 1.5, 2)])
    x, _, z, rotation = _pos(result.items[0])
    assert (x, z) == (pytest.approx(10 - 1 - 1 - 0.3), 0.0)
    assert rotation == pytest.approx(-math.pi / 2, abs=1e-5)


def test_open_wall_preference_spreads_along_back_when_walls_are_taken(
        room, rule_book, make_item, forbidden_rng):
    items = [
        make_item("area rug", 6, 4, 0.05),
        make_item("bed", 6.5, 7, 2.5),
        make_item("tv stand", 5, 1.5, 2),
        make_item("dresser", 4.5, 1.5, 3),
        make_item("bookshelf", 3.5, 1, 6),
        make_item("mirror", 3, 0.2, 4),
    ]
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(items)
    # Five items precede the mirror, so it takes the right third of the back wall
    x, _, z, rotation = _pos(_by_label(result, "mirror")[0])
    assert (x, z) == (pytest.approx(5.0), pytest.approx(-(8 - 0.1 - 1 - 0.1)))
    assert rotation == 0.0


def test_stacked_items_and_rugs_ignore_doors(rule_book, make_item, forbidden_rng):
    room = Room(length=20, width=16, doors=[Door(x=0, z=8, width=8)])
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate(
        [make_item("tv stand", 5, 1.5, 2), make_item("tv", 4, 0.5, 2.5)])
    stand = _by_label(result, "tv stand")[0]["position"]
    tv = _by_label(result, "tv")[0]["position"]
    # The stand is nudged out of the doorway once; the tv follows it, not the door
    assert stand["x"] == pytest.approx(4.0)
    assert (tv["x"], tv["y"], tv["z"]) == (pytest.approx(4.0), 2.0, pytest.approx(stand["z"]))

    small = Room(length=8, width=4, doors=[Door(x=0, z=-2, width=3)])
    result = LayoutGenerator(small, rule_book, rng=forbidden_rng).generate(
        [make_item("area rug", 3, 2, 0.05)])
    assert _pos(result.items[0]) == (0.0, 0.0, 0.0, 0.0)


def test_identity_items_ignore_preserved_poses(rule_book, make_item):
    room = Room(length=20, width=16, windows=[Window(x=3, z=-8, wall="back")])
    profile = IdentityProfile(activities=("work",))

    def run(preserve):
        sofa = make_item("sofa", 7, 3, 2.5, position=Pose(-5.0, 0.0, 4.0, 0.0))
        return LayoutGenerator(room, rule_book, identity_profile=profile,
                               preserve_detected_positions=preserve,
                               rng=np.random.default_rng(3)).generate([sofa])

    preserved = run(True)
    desk = _by_label(preserved, "desk")[0]
    assert desk["is_identity_item"] is True
    assert (desk["position"]["x"], desk["position"]["z"]) == \
        (pytest.approx(3.0), pytest.approx(-5.5))
    assert desk["position"] == _by_label(run(False), "desk")[0]["position"]
    sofa = _by_label(preserved, "sofa")[0]["position"]
    assert (sofa["x"], sofa["z"]) == (pytest.approx(-5.0), pytest.approx(4.0))


def test_output_annotations(room, rule_book, make_item, forbidden_rng):
    sofa = make_item("sofa", 7, 3, 2.5, extra={"maskUrl": "mask.png"})
    result = LayoutGenerator(room, rule_book, rng=forbidden_rng).generate([sofa])
    item = result.items[0]
    assert item["generation_type"] == "procedural"
    assert item["model_url"].endswith("Sofa.glb")
    assert item["maskUrl"] == "mask.png"
    assert item["is_identity_item"] is False
    assert item["used_random_fallback"] is False
    assert result.summary["room_dimensions"]["length"] == 20
    assert result.summary["random_fallbacks"] == 0
