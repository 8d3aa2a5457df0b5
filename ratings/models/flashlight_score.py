"""
FlashlightScore model — one row per (run, flashlight, profile).

The composite primary key is the upsert conflict target, so a triple can never
be duplicated within a run.
"""
from sqlalchemy import Column, Integer, Float, DateTime, JSON, ForeignKey, Index
from sqlalchemy.sql import func

from ratings.database import Base


class FlashlightScore(Base):
    __tablename__ = 'flashlight_scores'
    __table_args__ = (
        Index('ix_flashlight_scores_run_profile', 'run_id', 'profile_id'),
    )

    run_id = Column(Integer, ForeignKey('scoring_runs.id'), primary_key=True)
    flashlight_id = Column(Integer, ForeignKey('flashlights.id'), primary_key=True)
    profile_id = Column(Integer, ForeignKey('scoring_profiles.id'), primary_key=True)
    score = Column(Float, nullable=False)
    rank_position = Column(Integer, nullable=True)     # dense rank within (run, profile)
    metric_breakdown = Column(JSON, nullable=False, default=dict)
    generated_at = Column(DateTime(timezone=True), server_default=func.now())
