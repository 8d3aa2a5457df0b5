"""
Scoring persistence — run lifecycle rows, profile upserts, score upserts,
spec snapshot loading.

Everything except start_run/fail_run takes the caller's session and never
commits: the runner owns the unit of work. start_run/fail_run use
their own short-lived session so the run row (and its failure marker) survive
a rollback of the batch.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List

from sqlalchemy import func, select, update
from sqlalchemy.dialects import postgresql, sqlite

from ratings.config import PROFILE_SLUGS, RUN_NOTES_MAX_CHARS
from ratings.database import unit_of_work
from ratings.models.catalog import Flashlight, FlashlightSpec, FlashlightPriceSnapshot
from ratings.models.flashlight_score import FlashlightScore
from ratings.models.scoring_profile import ScoringProfile
from ratings.models.scoring_run import ScoringRun
from ratings.scoring.breakdown import ScoreBreakdown
from ratings.scoring.engine import SpecRow

logger = logging.getLogger('scoring.store')

PROFILE_DESCRIPTION = 'Auto-managed by scoring engine batch job.'


def _now():
    return datetime.now(timezone.utc)


def _insert_for(session):
    """Dialect-specific INSERT construct (both support ON CONFLICT DO UPDATE)."""
    dialect = session.get_bind().dialect.name
    if dialect == 'postgresql':
        return postgresql.insert
    if dialect == 'sqlite':
        return sqlite.insert
    raise NotImplementedError(f"Upserts not supported on dialect '{dialect}'")


def set_statement_timeout(session, seconds: float) -> None:
    """Cap every statement of the current transaction (Postgres only; no-op elsewhere)."""
    if session.get_bind().dialect.name != 'postgresql':
        return
    # is_local=true: scoped to this transaction, gone after commit/rollback
    session.execute(select(func.set_config('statement_timeout', str(int(seconds * 1000)), True)))


def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit]


def display_name_for(slug: str) -> str:
    """'edc' → 'EDC Score', 'throw' → 'Throw Score'."""
    if slug == 'edc':
        return 'EDC Score'
    return f"{slug[:1].upper()}{slug[1:]} Score"


# ── Run lifecycle ────────────────────────────────────────────────────────────

def start_run(session_factory, run_label: str, formula_version: str, initiated_by: str) -> int:
    """INSERT a running run row and commit it immediately. Returns the run id."""
    with unit_of_work(session_factory) as session:
        run = ScoringRun(
            run_label=run_label,
            formula_version=formula_version,
            status='running',
            initiated_by=initiated_by,
            started_at=_now(),
        )
        session.add(run)
        session.flush()
        run_id = run.id
    logger.info("Run %d started (label=%s, formula=%s, by=%s)",
                run_id, run_label, formula_version, initiated_by)
    return run_id


def complete_run(session, run_id: int) -> None:
    """Mark a running run completed. Commits with the caller's unit of work."""
    result = session.execute(
        update(ScoringRun)
        .where(ScoringRun.id == run_id, ScoringRun.status == 'running')
        .values(status='completed', completed_at=_now())
    )
    if result.rowcount != 1:
        raise RuntimeError(f"Run {run_id} is not in 'running' state")


def fail_run(session_factory, run_id: int, error: BaseException) -> None:
    """Record the failure on the run row through an independent session."""
    notes = truncate(f"error: {str(error) or type(error).__name__}", RUN_NOTES_MAX_CHARS)
    with unit_of_work(session_factory) as session:
        session.execute(
            update(ScoringRun)
            .where(ScoringRun.id == run_id, ScoringRun.status == 'running')
            .values(status='failed', completed_at=_now(), notes=notes)
        )
    logger.info("Run %d marked failed", run_id)


# ── Profiles ─────────────────────────────────────────────────────────────────

def ensure_profiles(session, slugs: List[str]) -> Dict[str, int]:
    """
    INSERT ... ON CONFLICT (slug) DO UPDATE display_name for each slug.

    Idempotent and safe under concurrent callers. Returns {slug: profile_id}.
    """
    unknown = [s for s in slugs if s not in PROFILE_SLUGS]
    if unknown:
        raise ValueError(f"Unknown profile slugs: {unknown}. Allowed: {PROFILE_SLUGS}")

    insert = _insert_for(session)
    for slug in slugs:
        stmt = insert(ScoringProfile).values(
            slug=slug,
            display_name=display_name_for(slug),
            description=PROFILE_DESCRIPTION,
            version=1,
            is_active=True,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ScoringProfile.slug],
            set_={'display_name': stmt.excluded.display_name},
        )
        session.execute(stmt)

    rows = session.execute(
        select(ScoringProfile.slug, ScoringProfile.id).where(ScoringProfile.slug.in_(slugs))
    ).all()
    return {slug: profile_id for slug, profile_id in rows}


# ── Scores ───────────────────────────────────────────────────────────────────

def upsert_score(session, run_id: int, flashlight_id: int, profile_id: int,
                 score: float, breakdown: ScoreBreakdown) -> None:
    """INSERT or overwrite score/breakdown/generated_at for one (run, flashlight, profile)."""
    insert = _insert_for(session)
    now = _now()
    stmt = insert(FlashlightScore).values(
        run_id=run_id,
        flashlight_id=flashlight_id,
        profile_id=profile_id,
        score=score,
        metric_breakdown=breakdown.to_dict(),
        generated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[FlashlightScore.run_id, FlashlightScore.flashlight_id, FlashlightScore.profile_id],
        set_={
            'score': stmt.excluded.score,
            'metric_breakdown': stmt.excluded.metric_breakdown,
            'generated_at': stmt.excluded.generated_at,
        },
    )
    session.execute(stmt)


# ── Spec snapshot ────────────────────────────────────────────────────────────

def load_specs(session) -> List[SpecRow]:
    """One SpecRow per active flashlight, with its latest USD price."""
    latest_price = (
        select(FlashlightPriceSnapshot.price)
        .where(
            FlashlightPriceSnapshot.flashlight_id == Flashlight.id,
            FlashlightPriceSnapshot.currency_code == 'USD',
        )
        .order_by(FlashlightPriceSnapshot.captured_at.desc(), FlashlightPriceSnapshot.id.desc())
        .limit(1)
        .correlate(Flashlight)
        .scalar_subquery()
    )

    rows = session.execute(
        select(
            Flashlight.id,
            FlashlightSpec.max_lumens,
            FlashlightSpec.max_candela,
            FlashlightSpec.beam_distance_m,
            FlashlightSpec.runtime_medium_min,
            FlashlightSpec.runtime_high_min,
            FlashlightSpec.waterproof_rating,
            FlashlightSpec.impact_resistance_m,
            latest_price.label('price_usd'),
        )
        .join(FlashlightSpec, FlashlightSpec.flashlight_id == Flashlight.id)
        .where(Flashlight.is_active.is_(True))
        .order_by(Flashlight.id)
    ).all()

    return [
        SpecRow(
            flashlight_id=r.id,
            max_lumens=r.max_lumens,
            max_candela=r.max_candela,
            beam_distance_m=r.beam_distance_m,
            runtime_medium_min=r.runtime_medium_min,
            runtime_high_min=r.runtime_high_min,
            waterproof_rating=r.waterproof_rating,
            impact_resistance_m=r.impact_resistance_m,
            price_usd=r.price_usd,
        )
        for r in rows
    ]
