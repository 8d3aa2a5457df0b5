"""
ScoreBreakdown — the audit record persisted next to every score.

Holds raw inputs, normalized values and per-stage weighted contributions, plus
the formula version that produced them. Persisted as JSON for the read layer;
never used to re-score.
"""
import json
from dataclasses import dataclass, field
from typing import Dict, Any


@dataclass
class ScoreBreakdown:
    formula_version: str
    raw: Dict[str, float] = field(default_factory=dict)
    normalized: Dict[str, float] = field(default_factory=dict)
    weighted: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'raw': dict(self.raw),
            'normalized': dict(self.normalized),
            'weighted': {group: dict(terms) for group, terms in self.weighted.items()},
            'formula_version': self.formula_version,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScoreBreakdown':
        return cls(
            formula_version=data.get('formula_version', ''),
            raw=dict(data.get('raw') or {}),
            normalized=dict(data.get('normalized') or {}),
            weighted={g: dict(t) for g, t in (data.get('weighted') or {}).items()},
        )
