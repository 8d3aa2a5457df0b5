"""
ScoringRun model — one row per batch scoring execution.

Lifecycle: running → completed | failed. Terminal rows are never updated again.
"""
from sqlalchemy import Column, Integer, Text, DateTime
from sqlalchemy.sql import func

from ratings.database import Base


class ScoringRun(Base):
    __tablename__ = 'scoring_runs'

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_label = Column(Text, nullable=False)
    formula_version = Column(Text, nullable=False, default='v1')
    status = Column(Text, nullable=False, default='running', index=True)
    initiated_by = Column(Text, nullable=False, default='scorejob')
    started_at = Column(DateTime(timezone=True), server_default=func.now())
    completed_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)   # truncated error text on failure
