"""
Profile scorer — five profile scores + audit breakdown for one flashlight.

    raw spec → normalize (per formula bounds) → durability → stages in
    dependency order (throw, flood, tactical, edc, performance, value)

Missing or non-positive metrics are left out of the normalized map, so each
weighted mean only averages over the metrics that actually carry signal.
"""
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ratings.scoring.breakdown import ScoreBreakdown
from ratings.scoring.formulas import DURABILITY_KEY, DurabilityRule, Formula, get_formula
from ratings.scoring.normalize import normalize_higher_linear

logger = logging.getLogger('scoring.engine')


@dataclass
class SpecRow:
    """Read-only spec snapshot for one active flashlight."""
    flashlight_id: int
    max_lumens: Optional[float] = None
    max_candela: Optional[float] = None
    beam_distance_m: Optional[float] = None
    runtime_medium_min: Optional[float] = None
    runtime_high_min: Optional[float] = None
    waterproof_rating: Optional[str] = None
    impact_resistance_m: Optional[float] = None
    price_usd: Optional[float] = None


@dataclass
class ScoreOutput:
    tactical: float = 0.0
    edc: float = 0.0
    value: float = 0.0
    throw: float = 0.0
    flood: float = 0.0

    def get(self, slug: str) -> float:
        return getattr(self, slug)

    def as_dict(self) -> Dict[str, float]:
        return {
            'tactical': self.tactical,
            'edc': self.edc,
            'value': self.value,
            'throw': self.throw,
            'flood': self.flood,
        }


def round3(v: float) -> float:
    """Round to 3 decimals, halves away from zero."""
    return math.copysign(math.floor(abs(v) * 1000 + 0.5), v) / 1000


def durability_score(waterproof: Optional[str], impact: float, rule: DurabilityRule) -> float:
    ip_component = rule.waterproof_tiers.get(
        (waterproof or '').strip().upper(), rule.waterproof_default)

    impact_norm = 0.0
    if impact > 0:
        impact_norm = normalize_higher_linear(impact, rule.impact_low, rule.impact_high)
    return ip_component * rule.waterproof_weight + impact_norm * rule.impact_weight


def weighted_mean(group: str, items: List[Tuple[str, float, float]],
                  weighted: Dict[str, Dict[str, float]]) -> float:
    """
    Weighted average of (name, value, weight) terms, skipping value<=0 / weight<=0.

    Each included term's contribution is recorded under weighted[group].
    """
    total = 0.0
    total_weight = 0.0
    group_map = {}
    for name, value, weight in items:
        if value <= 0 or weight <= 0:
            continue
        total_weight += weight
        total += value * weight
        group_map[name] = round3(value * weight)
    if group_map:
        weighted[group] = group_map
    if total_weight == 0:
        return 0.0
    return total / total_weight


def _positive(v: Optional[float]) -> float:
    return float(v) if v is not None and v > 0 else 0.0


def evaluate(row: SpecRow, formula: Formula, formula_version: str) -> Tuple[Dict[str, float], ScoreBreakdown]:
    """Run every stage of `formula` on `row`. Returns ({stage: unrounded score}, breakdown)."""
    breakdown = ScoreBreakdown(formula_version=formula_version)

    for bound in formula.bounds:
        value = _positive(getattr(row, bound.field))
        if value > 0:
            breakdown.raw[bound.field] = value
            breakdown.normalized[bound.key] = bound.normalize(value)

    durability = durability_score(row.waterproof_rating, _positive(row.impact_resistance_m),
                                  formula.durability)
    breakdown.raw[DURABILITY_KEY] = durability
    breakdown.normalized[DURABILITY_KEY] = durability

    results: Dict[str, float] = {}
    for stage in formula.stages:
        terms = [
            (name, results[name] if name in results else breakdown.normalized.get(name, 0.0), weight)
            for name, weight in stage.weights
        ]
        results[stage.name] = weighted_mean(stage.name, terms, breakdown.weighted)

    return results, breakdown


def compute_scores(row: SpecRow, formula_version: str) -> Tuple[ScoreOutput, ScoreBreakdown]:
    """Score one flashlight under the given formula version."""
    formula = get_formula(formula_version)
    results, breakdown = evaluate(row, formula, formula_version)

    output = ScoreOutput(**{
        stage.name: round3(results[stage.name]) for stage in formula.profile_stages
    })
    logger.debug("flashlight %s: %s", row.flashlight_id, output.as_dict())
    return output, breakdown
