"""
Furniture layout route.

Takes the objects detected in a room photo (plus room extents, openings and
an optional identity profile) and returns them with final 3D poses.
"""

import copy
import logging
import uuid
from typing import List, Optional

import numpy as np
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from config import (
    DEFAULT_ROOM_HEIGHT_FT, DEFAULT_ROOM_LENGTH_FT, DEFAULT_ROOM_WIDTH_FT,
    LAYOUT_RANDOM_SEED, LAYOUT_RULES_PATH,
)
from database import get_db
from schemas import (
    DimensionsIn, FloorplanDataIn, IdentityProfileIn, LayoutRequest, ObjectIn, PlacementRuleOut,
    PositionedModelOut, RoomDimensionsIn,
)
from services.furniture_layout import (
    Dimensions, Door, IdentityProfile, Item, LayoutGenerator, Pose, Room, Window,
    load_room_presets, load_rule_book, resolve_rule,
)
from services.furniture_layout.assets import model_url_for
from services.furniture_layout.room_model import normalize_wall, opening_center, to_feet
from services.layout_runs import (
    create_layout_run, get_layout_run_by_id, layout_run_to_json, list_recent_layout_runs,
)

logger = logging.getLogger(__name__)

# Keys the layout writes; stale copies in the request are dropped
_OUTPUT_KEYS = ("dimensions", "modelUrl", "generationType", "isIdentityItem", "usedRandomFallback")

router = APIRouter(prefix="/api/layout", tags=["layout"])


# ---------- Request conversion ----------

def build_room(dims: Optional[RoomDimensionsIn], floorplan: Optional[FloorplanDataIn]) -> Room:
    """Room in feet, with openings given by offset converted to room coordinates."""
    dims = dims or RoomDimensionsIn()
    unit = dims.unit
    length = to_feet(dims.length, unit) if dims.length else DEFAULT_ROOM_LENGTH_FT
    width = to_feet(dims.width, unit) if dims.width else DEFAULT_ROOM_WIDTH_FT
    height = to_feet(dims.height, unit) if dims.height else DEFAULT_ROOM_HEIGHT_FT
    if length <= 0:
        length = DEFAULT_ROOM_LENGTH_FT
    if width <= 0:
        width = DEFAULT_ROOM_WIDTH_FT

    doors, windows = [], []
    if floorplan:
        for d in floorplan.doors:
            x, z = _opening_xz(d.x, d.z, d.wall, d.position, length, width)
            doors.append(Door(x=x, z=z, width=d.width, wall=normalize_wall(d.wall)))
        for w in floorplan.windows:
            x, z = _opening_xz(w.x, w.z, w.wall, w.position, length, width)
            windows.append(Window(x=x, z=z, width=w.width, height=w.height,
                                  wall=normalize_wall(w.wall)))
    return Room(length=length, width=width, height=height, doors=doors, windows=windows)


def _opening_xz(x, z, wall, position, length, width):
    if x is not None and z is not None:
        return x, z
    side = normalize_wall(wall)
    if side and position is not None:
        return opening_center(side, position, length, width)
    return x or 0.0, z or 0.0


def build_items(raw_objects: list) -> List[Item]:
    """Validate the raw object list; raises HTTPException(400) on bad entries."""
    items = []
    for i, raw in enumerate(raw_objects):
        try:
            obj = ObjectIn.model_validate(raw)
            extra = dict(obj.model_extra or {})
            dims_in = obj.estimated_dimensions
            if dims_in is None and isinstance(extra.get("dimensions"), dict):
                dims_in = DimensionsIn.model_validate(extra["dimensions"])
        except ValidationError as e:
            raise HTTPException(status_code=400,
                                detail=f"Invalid object at index {i}: {e.errors()[0]['msg']}")
        dimensions = None
        if dims_in is not None:
            dimensions = Dimensions.from_values(dims_in.length, dims_in.width,
                                                dims_in.height, dims_in.unit)
        for key in _OUTPUT_KEYS:
            extra.pop(key, None)
        position = None
        if obj.position is not None:
            position = Pose(obj.position.x, obj.position.y, obj.position.z,
                            obj.position.rotation)
        items.append(Item(
            id=obj.id or f"object-{uuid.uuid4().hex[:8]}",
            label=obj.label,
            category=obj.category,
            dimensions=dimensions,
            position=position,
            detected_color=obj.detected_color,
            material=obj.material,
            style=obj.style,
            confidence=obj.confidence,
            extra=extra,
        ))
    return items


def build_identity_profile(profile: Optional[IdentityProfileIn]) -> Optional[IdentityProfile]:
    if profile is None:
        return None
    data = profile.model_dump()
    data["activities"] = tuple(data["activities"])
    return IdentityProfile(**data)


def _camel_keys(data: dict) -> dict:
    return {to_camel(k): v for k, v in data.items()}


def _run_layout(req: LayoutRequest) -> dict:
    if not isinstance(req.objects, list):
        raise HTTPException(status_code=400, detail="No objects provided")
    items = build_items(req.objects)
    room = build_room(req.room_dimensions, req.floorplan_data)

    try:
        generator = LayoutGenerator(
            room,
            load_rule_book(LAYOUT_RULES_PATH),
            identity_profile=build_identity_profile(req.identity_profile),
            preserve_detected_positions=req.prefer_detected_positions,
            rng=np.random.default_rng(LAYOUT_RANDOM_SEED),
        )
        result = generator.generate(items)
        models = [PositionedModelOut(**item).model_dump(by_alias=True)
                  for item in result.items]
    except Exception:
        logger.exception("Layout generation failed")
        raise HTTPException(status_code=500, detail="Failed to generate layout")

    layout_info = _camel_keys(result.summary)
    return {"models": models, "layoutInfo": layout_info, "audit": _camel_keys(result.audit)}


# ---------- Endpoints ----------

@router.post("/generate")
async def generate_layout(req: LayoutRequest, db: AsyncSession = Depends(get_db)):
    """
    Place the given objects in the room.

    Objects are sorted by placement zone, placed one at a time without
    backtracking and returned with ``position3D`` and ``modelUrl``.
    """
    logger.info(f"Layout request with "
                f"{len(req.objects) if isinstance(req.objects, list) else 0} objects")
    layout = _run_layout(req)

    layout_id = None
    if req.save:
        row = await create_layout_run(db, req.model_dump(mode="json", by_alias=True),
                                      layout["models"], layout["layoutInfo"], layout["audit"])
        layout_id = row.id

    return {"success": True, "layout_id": layout_id, **layout}


@router.put("/generate")
async def regenerate_layout(req: LayoutRequest, db: AsyncSession = Depends(get_db)):
    """Batch form of ``POST /generate`` kept for older clients."""
    return await generate_layout(req, db)


@router.get("/rules", response_model=PlacementRuleOut)
async def get_placement_rule(label: str = Query(..., min_length=1)):
    """Placement rule the engine would apply to ``label``."""
    rule_book = load_rule_book(LAYOUT_RULES_PATH)
    rule = resolve_rule(label, rule_book)
    return PlacementRuleOut(label=label, model_url=model_url_for(label, rule_book),
                            **rule.to_dict())


@router.get("/status")
async def layout_status():
    rule_book = load_rule_book(LAYOUT_RULES_PATH)
    return {
        "status": "ready",
        "engine": "rule-based sequential placement",
        "placement_rules": len(rule_book.placement_rules),
        "stacking_rules": len(rule_book.stacking_rules),
        "features": [
            "zone-priority ordering",
            "ring collision search",
            "stacking on supports",
            "door avoidance",
            "window-aware placement",
            "identity-driven items",
        ],
    }


@router.get("/runs")
async def list_layout_runs(limit: int = Query(20, ge=1, le=100),
                           db: AsyncSession = Depends(get_db)):
    """Recently stored layouts, newest first."""
    rows = await list_recent_layout_runs(db, limit)
    return [
        {
            "layout_id": row.id,
            "created_at": row.created_at.isoformat() if row.created_at else None,
            "total_objects": row.total_objects,
            "room": {"length": row.room_length, "width": row.room_width},
        }
        for row in rows
    ]


@router.get("/defaults/{room_type}")
async def get_default_layout(room_type: str):
    """Preset room and furniture set; unknown room types get the bedroom."""
    presets = load_room_presets()
    key = room_type if room_type in presets else "bedroom"
    preset = copy.deepcopy(presets[key])
    return {"room_type": key, **preset}


@router.get("/{layout_id}")
async def get_layout(layout_id: str, db: AsyncSession = Depends(get_db)):
    """Retrieve a stored layout by ID."""
    row = await get_layout_run_by_id(db, layout_id)
    if not row:
        raise HTTPException(status_code=404, detail="Layout not found")
    return layout_run_to_json(row)
