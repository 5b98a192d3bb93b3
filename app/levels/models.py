"""
Level progression tables.

LevelProgress: one row per user; `level` is always derived from `total_xp`.
LevelMilestone: append-only log of level crossings.
"""
from sqlalchemy import Column, Integer, BigInteger, String, DateTime, Index

from app.db.base import Base


class LevelProgress(Base):
    __tablename__ = "level_progress"

    user_id = Column(String(128), primary_key=True)

    total_xp = Column(BigInteger, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)

    # Set once on insert, never touched again
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class LevelMilestone(Base):
    __tablename__ = "level_milestones"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(128), nullable=False, index=True)

    old_level = Column(Integer, nullable=False)
    new_level = Column(Integer, nullable=False)
    xp_gained = Column(BigInteger, nullable=False, default=0)
    total_xp = Column(BigInteger, nullable=False, default=0)

    # "milestone" | "legendary" | NULL
    reward_type = Column(String(32), nullable=True)

    achieved_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_level_milestones_user_achieved", "user_id", "achieved_at"),
    )
