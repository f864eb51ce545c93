"""
Data model
==========

Each row of the storm database is converted into a `StormEvent` object.
Records are immutable (`frozen=True`) so that:
- events cannot be accidentally modified after loading, and
- every pipeline stage returns new records instead of editing old ones.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple

HEALTH_METRICS = ("fatalities", "injuries")
ECONOMIC_METRICS = ("prop_cost", "crop_cost")


@dataclass(frozen=True)
class StormEvent:
    """Immutable record for one storm database row."""
    event_id: int
    event_type: str
    fatalities: int
    injuries: int
    # damage mantissa + magnitude code, e.g. 25.0 and "M"
    prop_dmg: float
    prop_dmg_exp: str
    crop_dmg: float
    crop_dmg_exp: str

    def has_impact(self) -> bool:
        """True if the event caused any damage, injury or death."""
        return (
            self.prop_dmg > 0
            or self.crop_dmg > 0
            or self.fatalities > 0
            or self.injuries > 0
        )


@dataclass(frozen=True)
class NormalizedEvent:
    """A StormEvent with its damage resolved to absolute US$."""
    event: StormEvent
    prop_cost: float
    crop_cost: float

    @property
    def event_type(self) -> str:
        return self.event.event_type


@dataclass(frozen=True)
class SummaryRow:
    """Per event-type totals of two metrics.

    `rank_key` is the sum of both metrics and orders the summary table.
    """
    event_type: str
    metrics: Tuple[str, str]
    first: float
    second: float

    @property
    def rank_key(self) -> float:
        return self.first + self.second

    def value(self, metric: str) -> float:
        if metric == self.metrics[0]:
            return self.first
        if metric == self.metrics[1]:
            return self.second
        raise KeyError(f"Unknown metric {metric!r}; row has {self.metrics}")

    def as_dict(self) -> Dict[str, object]:
        return {
            "event_type": self.event_type,
            self.metrics[0]: self.first,
            self.metrics[1]: self.second,
            "rank_key": self.rank_key,
        }


@dataclass(frozen=True)
class ImpactTriple:
    """One long-form (event type, metric, value) point for plotting."""
    event_type: str
    metric: str
    value: float


@dataclass(frozen=True)
class ImpactSummary:
    """Everything the reporter needs from one pipeline run."""
    health: Tuple[SummaryRow, ...]
    economic: Tuple[SummaryRow, ...]
    total_records: int
    impactful_records: int
    # unrecognized magnitude code -> number of positive mantissas it zeroed
    unrecognized_codes: Dict[str, int] = field(default_factory=dict)
    # folded label -> the distinct raw spellings that fold to it
    label_fragments: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    labels_folded: bool = False
