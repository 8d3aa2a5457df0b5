"""
Ranker — dense rank per profile within a single run.

Ties share a rank and the next distinct score gets previous_rank + 1. Only rows
of the given run are read or written, so concurrent runs never interfere.
"""
import logging

from sqlalchemy import func, select, update

from ratings.models.flashlight_score import FlashlightScore

logger = logging.getLogger('scoring.ranker')


def rank_run(session, run_id: int) -> int:
    """Write rank_position onto every score of `run_id`. Returns rows ranked."""
    rnk = func.dense_rank().over(
        partition_by=FlashlightScore.profile_id,
        order_by=FlashlightScore.score.desc(),
    ).label('rnk')

    ranked = session.execute(
        select(
            FlashlightScore.run_id,
            FlashlightScore.flashlight_id,
            FlashlightScore.profile_id,
            rnk,
        ).where(FlashlightScore.run_id == run_id)
    ).all()

    if not ranked:
        logger.info("Run %d: nothing to rank", run_id)
        return 0

    # ORM bulk UPDATE by primary key
    session.execute(
        update(FlashlightScore),
        [
            {
                'run_id': r.run_id,
                'flashlight_id': r.flashlight_id,
                'profile_id': r.profile_id,
                'rank_position': r.rnk,
            }
            for r in ranked
        ],
    )
    logger.info("Run %d: ranked %d scores", run_id, len(ranked))
    return len(ranked)
