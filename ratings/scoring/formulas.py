"""
Scoring formula table — normalization bounds, durability rule and stage weights,
keyed by formula version.

Loaded from formulas.yaml (cached) with a hardcoded fallback. Stages reference
metrics or other stages by name; resolve_stage_order() turns the declared list
into a dependency-respecting evaluation order, so a new profile that consumes
another one can't be evaluated before its input.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import yaml

from ratings.config import PROFILE_SLUGS
from ratings.scoring.normalize import NORMALIZERS

logger = logging.getLogger('scoring.formulas')

DURABILITY_KEY = 'durability'


class FormulaConfigError(ValueError):
    """Raised when a formula table is malformed (unknown kind, bad stage graph)."""


@dataclass(frozen=True)
class MetricBound:
    field: str          # raw SpecRow attribute
    key: str            # name in the normalized map / stage terms
    kind: str           # higher_log | higher_linear | lower_linear
    low: float          # floor (higher_*) or best (lower_linear)
    high: float         # cap (higher_*) or worst (lower_linear)

    def normalize(self, value: float) -> float:
        return NORMALIZERS[self.kind](value, self.low, self.high)


@dataclass(frozen=True)
class DurabilityRule:
    waterproof_tiers: Dict[str, float]
    waterproof_default: float = 30.0
    waterproof_weight: float = 0.65
    impact_weight: float = 0.35
    impact_low: float = 1.0
    impact_high: float = 3.0


@dataclass(frozen=True)
class Stage:
    name: str
    weights: Tuple[Tuple[str, float], ...]
    persisted: bool = True

    @property
    def terms(self) -> List[str]:
        return [name for name, _ in self.weights]


@dataclass
class Formula:
    version: str
    bounds: List[MetricBound]
    durability: DurabilityRule
    stages: List[Stage] = field(default_factory=list)   # already in evaluation order

    @property
    def metric_keys(self) -> List[str]:
        return [b.key for b in self.bounds] + [DURABILITY_KEY]

    @property
    def profile_stages(self) -> List[Stage]:
        """Stages whose result is stored as a profile score."""
        return [s for s in self.stages if s.persisted]


# ── Config loading (YAML with hardcoded fallback) ────────────────────────────

_formula_config = None


def _default_config():
    """Hardcoded fallback if YAML is missing."""
    return {
        'default_version': 'v1',
        'versions': {
            'v1': {
                'bounds': {
                    'max_lumens': {'kind': 'higher_log', 'low': 100, 'high': 5000},
                    'max_candela': {'kind': 'higher_log', 'low': 1000, 'high': 120000},
                    'beam_distance_m': {'kind': 'higher_log', 'low': 60, 'high': 700},
                    'runtime_high_min': {'kind': 'higher_log', 'low': 20, 'high': 300},
                    'runtime_medium_min': {'kind': 'higher_log', 'low': 60, 'high': 900},
                    'price_usd': {'kind': 'lower_linear', 'low': 20, 'high': 300, 'key': 'price'},
                },
                'durability': {
                    'waterproof_weight': 0.65,
                    'waterproof_default': 30,
                    'waterproof_tiers': {
                        'IPX4': 55, 'IP54': 55, 'IP64': 55,
                        'IPX6': 70, 'IP66': 70,
                        'IPX7': 85, 'IP67': 85,
                        'IPX8': 95, 'IP68': 95,
                    },
                    'impact_weight': 0.35,
                    'impact_low': 1,
                    'impact_high': 3,
                },
                'stages': [
                    {'name': 'throw', 'weights': {
                        'max_candela': 0.45, 'beam_distance_m': 0.30,
                        'runtime_high_min': 0.15, 'durability': 0.10}},
                    {'name': 'flood', 'weights': {
                        'max_lumens': 0.50, 'runtime_medium_min': 0.25,
                        'price': 0.15, 'durability': 0.10}},
                    {'name': 'tactical', 'weights': {
                        'max_candela': 0.30, 'runtime_high_min': 0.20,
                        'durability': 0.20, 'throw': 0.20, 'price': 0.10}},
                    {'name': 'edc', 'weights': {
                        'runtime_medium_min': 0.30, 'flood': 0.20,
                        'durability': 0.15, 'max_lumens': 0.15, 'price': 0.20}},
                    {'name': 'performance', 'persisted': False, 'weights': {
                        'max_lumens': 0.35, 'max_candela': 0.25,
                        'runtime_high_min': 0.20, 'durability': 0.20}},
                    {'name': 'value', 'weights': {'performance': 0.60, 'price': 0.40}},
                ],
            },
        },
    }


def load_formula_config():
    """Load the formula table from YAML, with in-memory cache and hardcoded fallback."""
    global _formula_config
    if _formula_config is not None:
        return _formula_config

    config_path = os.path.join(os.path.dirname(__file__), 'formulas.yaml')
    try:
        with open(config_path, 'r') as f:
            loaded = yaml.safe_load(f)
        if not isinstance(loaded, dict):
            raise ValueError(f"expected a mapping, got {type(loaded).__name__}")
        _formula_config = loaded
        logger.info("Formula table loaded from YAML (versions=%s)",
                    ', '.join((loaded.get('versions') or {}).keys()))
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.warning("Formula YAML not loadable (%s), using defaults", e)
        _formula_config = _default_config()

    return _formula_config


# ── Stage ordering ───────────────────────────────────────────────────────────

def resolve_stage_order(stages: List[Stage], metric_keys: List[str]) -> List[Stage]:
    """
    Return stages in an order where every stage follows the stages it consumes.

    Declaration order is kept wherever dependencies allow. Raises
    FormulaConfigError on unknown references, cycles, duplicate names, or a
    stage named like a metric.
    """
    metrics = set(metric_keys)
    names = [s.name for s in stages]
    if len(set(names)) != len(names):
        raise FormulaConfigError(f"Duplicate stage names: {names}")
    clashes = metrics.intersection(names)
    if clashes:
        raise FormulaConfigError(f"Stage names shadow metrics: {sorted(clashes)}")

    for stage in stages:
        unknown = [t for t in stage.terms if t not in metrics and t not in names]
        if unknown:
            raise FormulaConfigError(f"Stage '{stage.name}' references unknown terms: {unknown}")

    ordered = []
    done = set()
    pending = list(stages)
    while pending:
        ready = [s for s in pending
                 if all(t in metrics or t in done for t in s.terms)]
        if not ready:
            raise FormulaConfigError(
                f"Stage dependency cycle among: {[s.name for s in pending]}")
        for stage in ready:
            ordered.append(stage)
            done.add(stage.name)
            pending.remove(stage)
    return ordered


# ── Formula construction ─────────────────────────────────────────────────────

def _build_formula(version: str, spec: dict) -> Formula:
    bounds = []
    for field_name, b in (spec.get('bounds') or {}).items():
        kind = b.get('kind')
        if kind not in NORMALIZERS:
            raise FormulaConfigError(f"Metric '{field_name}' has unknown kind '{kind}'")
        bounds.append(MetricBound(
            field=field_name,
            key=b.get('key', field_name),
            kind=kind,
            low=float(b['low']),
            high=float(b['high']),
        ))

    d = spec.get('durability') or {}
    durability = DurabilityRule(
        waterproof_tiers={k.upper(): float(v) for k, v in (d.get('waterproof_tiers') or {}).items()},
        waterproof_default=float(d.get('waterproof_default', 30)),
        waterproof_weight=float(d.get('waterproof_weight', 0.65)),
        impact_weight=float(d.get('impact_weight', 0.35)),
        impact_low=float(d.get('impact_low', 1)),
        impact_high=float(d.get('impact_high', 3)),
    )

    stages = [
        Stage(
            name=s['name'],
            weights=tuple((k, float(w)) for k, w in s['weights'].items()),
            persisted=s.get('persisted', True),
        )
        for s in (spec.get('stages') or [])
    ]

    formula = Formula(version=version, bounds=bounds, durability=durability)
    formula.stages = resolve_stage_order(stages, formula.metric_keys)

    persisted = sorted(s.name for s in formula.profile_stages)
    if persisted != sorted(PROFILE_SLUGS):
        raise FormulaConfigError(
            f"Formula '{version}' must persist exactly {PROFILE_SLUGS}, got {persisted}")
    return formula


_formula_cache: Dict[str, Formula] = {}
_warned_versions = set()


def get_formula(version: Optional[str] = None) -> Formula:
    """
    Return the Formula for a version string.

    Unknown versions fall back to the table's default_version (with a warning);
    the caller still stamps the requested version on its breakdowns.
    """
    cfg = load_formula_config()
    versions = cfg.get('versions') or {}
    default_version = cfg.get('default_version', 'v1')

    resolved = version if version in versions else default_version
    if version and version not in versions and version not in _warned_versions:
        _warned_versions.add(version)
        logger.warning("Unknown formula version '%s', scoring with '%s' table", version, resolved)
    if resolved not in versions:
        raise FormulaConfigError(f"Formula table has no '{resolved}' version")

    if resolved not in _formula_cache:
        _formula_cache[resolved] = _build_formula(resolved, versions[resolved])
    return _formula_cache[resolved]


def reset_cache():
    """Drop cached config + built formulas (tests, config reloads)."""
    global _formula_config
    _formula_config = None
    _formula_cache.clear()
    _warned_versions.clear()
