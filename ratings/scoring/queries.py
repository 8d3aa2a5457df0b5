"""
Read helpers for the query layer — "current" run and per-profile rankings.

The current ranking is always the most recently completed run; running and
failed runs are never served.
"""
from typing import Dict, List, Optional, Any

from sqlalchemy import select

from ratings.models.catalog import Flashlight
from ratings.models.flashlight_score import FlashlightScore
from ratings.models.scoring_profile import ScoringProfile
from ratings.models.scoring_run import ScoringRun
from ratings.scoring.breakdown import ScoreBreakdown


def get_latest_completed_run(session) -> Optional[ScoringRun]:
    return session.execute(
        select(ScoringRun)
        .where(ScoringRun.status == 'completed')
        .order_by(ScoringRun.completed_at.desc(), ScoringRun.id.desc())
        .limit(1)
    ).scalar_one_or_none()


def get_rankings(session, slug: str, run_id: int = None, limit: int = 50) -> List[Dict[str, Any]]:
    """
    Ranked scores for one profile, best first.

    Defaults to the latest completed run; returns [] if there is none.
    """
    if run_id is None:
        run = get_latest_completed_run(session)
        if run is None:
            return []
        run_id = run.id

    rows = session.execute(
        select(
            FlashlightScore.flashlight_id,
            Flashlight.name,
            FlashlightScore.score,
            FlashlightScore.rank_position,
        )
        .join(ScoringProfile, ScoringProfile.id == FlashlightScore.profile_id)
        .join(Flashlight, Flashlight.id == FlashlightScore.flashlight_id)
        .where(FlashlightScore.run_id == run_id, ScoringProfile.slug == slug)
        .order_by(FlashlightScore.rank_position.asc(), FlashlightScore.flashlight_id.asc())
        .limit(limit)
    ).all()

    return [
        {
            'flashlight_id': r.flashlight_id,
            'name': r.name,
            'score': r.score,
            'rank_position': r.rank_position,
        }
        for r in rows
    ]


def get_breakdown(session, run_id: int, flashlight_id: int, slug: str) -> Optional[ScoreBreakdown]:
    """The audit breakdown stored with one score, or None if that score doesn't exist."""
    data = session.execute(
        select(FlashlightScore.metric_breakdown)
        .join(ScoringProfile, ScoringProfile.id == FlashlightScore.profile_id)
        .where(
            FlashlightScore.run_id == run_id,
            FlashlightScore.flashlight_id == flashlight_id,
            ScoringProfile.slug == slug,
        )
    ).scalar_one_or_none()
    if data is None:
        return None
    return ScoreBreakdown.from_dict(data)
