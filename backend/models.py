"""SQLAlchemy ORM models for stored layout runs."""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Float, Integer, DateTime, Text
from database import Base


def generate_uuid():
    return str(uuid.uuid4())


class LayoutRun(Base):
    __tablename__ = "layout_runs"

    id = Column(String, primary_key=True, default=generate_uuid)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    room_length = Column(Float, nullable=False)
    room_width = Column(Float, nullable=False)
    room_height = Column(Float, nullable=True)

    total_objects = Column(Integer, nullable=False, default=0)
    identity_items_added = Column(Integer, nullable=False, default=0)
    random_fallbacks = Column(Integer, nullable=False, default=0)

    request_json = Column(Text, nullable=True)  # JSON string of the request body
    layout_json = Column(Text, nullable=True)   # JSON string of positioned models
    summary_json = Column(Text, nullable=True)  # JSON string of layoutInfo
    audit_json = Column(Text, nullable=True)    # JSON string of the footprint audit
