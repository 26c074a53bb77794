import json
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from models import LayoutRun


async def create_layout_run(db: AsyncSession, request_data: dict, models: list,
                            layout_info: dict, audit: dict):
    """Store one generated layout together with the request that produced it."""
    room = layout_info.get('roomDimensions', {})
    row = LayoutRun(
        room_length=float(room.get('length', 0)),
        room_width=float(room.get('width', 0)),
        room_height=room.get('height'),
        total_objects=int(layout_info.get('totalObjects', 0)),
        identity_items_added=int(layout_info.get('identityItemsAdded', 0)),
        random_fallbacks=int(layout_info.get('randomFallbacks', 0)),
        request_json=json.dumps(request_data),
        layout_json=json.dumps(models),
        summary_json=json.dumps(layout_info),
        audit_json=json.dumps(audit),
    )
    db.add(row)
    await db.flush()
    await db.commit()
    await db.refresh(row)
    return row


async def get_layout_run_by_id(db: AsyncSession, run_id: str):
    """Retrieve a single layout run by its primary key."""
    result = await db.execute(select(LayoutRun).where(LayoutRun.id == run_id))
    return result.scalars().first()


async def list_recent_layout_runs(db: AsyncSession, limit: int = 20):
    """Most recent layout runs first."""
    result = await db.execute(
        select(LayoutRun).order_by(LayoutRun.created_at.desc()).limit(limit)
    )
    return result.scalars().all()


def layout_run_to_json(row: LayoutRun) -> dict:
    """Convert a LayoutRun ORM row to the same shape the generate endpoint returns."""
    return {
        "layout_id": row.id,
        "created_at": row.created_at.isoformat() if row.created_at else None,
        "models": json.loads(row.layout_json) if row.layout_json else [],
        "layoutInfo": json.loads(row.summary_json) if row.summary_json else {},
        "audit": json.loads(row.audit_json) if row.audit_json else {},
        "request": json.loads(row.request_json) if row.request_json else None,
    }
