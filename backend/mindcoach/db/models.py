"""ORM models for durable per-user state.

Only terminal artifacts are stored: the ability profile (updated after each
scored answer) and the reflection written at the end of a session.
"""

from datetime import datetime

from sqlalchemy import JSON, Column, Float, Index, Integer, String, Text

from .base import Base


class AbilityProfileRecord(Base):
    """Per-user ability scores, 0-100."""
    __tablename__ = "ability_profiles"

    user_id = Column(String(64), primary_key=True)
    attention = Column(Float, nullable=False, default=50.0)
    memory = Column(Float, nullable=False, default=50.0)
    logic = Column(Float, nullable=False, default=50.0)
    expression = Column(Float, nullable=False, default=50.0)
    metacognition = Column(Float, nullable=False, default=50.0)
    scored_tasks = Column(Integer, nullable=False, default=0)
    updated_at = Column(
        String(50),
        default=lambda: datetime.utcnow().isoformat(),
        onupdate=lambda: datetime.utcnow().isoformat(),
    )


class ReflectionRecord(Base):
    """End-of-session reflection."""
    __tablename__ = "reflections"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    session_id = Column(String(64), nullable=False)
    summary = Column(Text, nullable=False)
    payload = Column(JSON, nullable=False)
    created_at = Column(String(50), default=lambda: datetime.utcnow().isoformat())

    __table_args__ = (
        Index("idx_reflections_user_created", "user_id", "created_at"),
    )
