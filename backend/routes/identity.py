import logging

from fastapi import APIRouter

from config import LAYOUT_RULES_PATH
from routes.layout import build_identity_profile
from schemas import IdentityItemsRequest, IdentityItemsResponse
from services.furniture_layout import Item, expand_identity_items, load_rule_book

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/identity", tags=["identity"])


@router.post("/items", response_model=IdentityItemsResponse)
async def identity_items(req: IdentityItemsRequest):
    """Furniture and decor implied by an identity profile, minus what the room already has."""
    existing = [Item(id=f"existing-{i}", label=label)
                for i, label in enumerate(req.existing_labels)]
    generated = expand_identity_items(build_identity_profile(req.identity_profile),
                                      load_rule_book(LAYOUT_RULES_PATH), existing)
    items = [
        {
            "id": item.id,
            "label": item.label,
            "category": item.category,
            "estimatedDimensions": item.dims.to_dict(),
            "detectedColor": item.detected_color,
            "material": item.material,
            "confidence": item.confidence,
            "isIdentityItem": True,
            "identitySource": item.extra.get("identity_source"),
        }
        for item in generated
    ]
    logger.info(f"Identity profile produced {len(items)} items")
    return IdentityItemsResponse(items=items, count=len(items))
