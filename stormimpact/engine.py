"""
Core engine
===========

This is the heart of the project. One run is a straight line:

1) Filter     -> keep events with any damage, injury or fatality
2) Normalize  -> resolve damage mantissa + magnitude code into US$
3) Aggregate  -> per event type totals, ranked by the sum of two metrics
4) Reshape    -> top-N rows as long-form (event type, metric, value) triples

Every function here is pure: it takes a sequence and returns a new tuple,
nothing is edited in place.
"""

from __future__ import annotations
import logging
import math
from collections import Counter
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .config import MagnitudeTable, PipelineConfig
from .dsa import merge_sort
from .indices import build_type_index, exact_label, folded_label, fragment_index
from .models import (
    ECONOMIC_METRICS, HEALTH_METRICS,
    ImpactSummary, ImpactTriple, NormalizedEvent, StormEvent, SummaryRow,
)

log = logging.getLogger(__name__)


# ---------------- Filter ----------------
def filter_impactful(events: Iterable[StormEvent]) -> Tuple[StormEvent, ...]:
    """Keep only events with a positive damage, injury or fatality value."""
    return tuple(e for e in events if e.has_impact())


# ---------------- Cost normalizer ----------------
def _finite(v: Optional[float]) -> float:
    if v is None:
        return 0.0
    v = float(v)
    return v if math.isfinite(v) else 0.0

def resolve_cost(mantissa: Optional[float], code: Optional[str],
                 table: Optional[MagnitudeTable] = None) -> float:
    """Absolute cost for a mantissa and magnitude code.

    >>> resolve_cost(5, "K")
    5000.0
    >>> resolve_cost(2, "?")
    0.0
    """
    table = table or MagnitudeTable()
    return _finite(mantissa) * table.multiplier(code)

def normalize_costs(events: Iterable[StormEvent],
                    table: Optional[MagnitudeTable] = None) -> Tuple[NormalizedEvent, ...]:
    table = table or MagnitudeTable()
    return tuple(
        NormalizedEvent(
            event=e,
            prop_cost=resolve_cost(e.prop_dmg, e.prop_dmg_exp, table),
            crop_cost=resolve_cost(e.crop_dmg, e.crop_dmg_exp, table),
        )
        for e in events
    )

def audit_magnitude_codes(events: Iterable[StormEvent],
                          table: Optional[MagnitudeTable] = None) -> Dict[str, int]:
    """Count positive mantissas whose code the table does not recognize.

    These are the amounts zeroed (or scaled by `table.default`) by the policy.
    """
    table = table or MagnitudeTable()
    counts: Counter = Counter()
    for e in events:
        if e.prop_dmg > 0 and not table.recognizes(e.prop_dmg_exp):
            counts[e.prop_dmg_exp] += 1
        if e.crop_dmg > 0 and not table.recognizes(e.crop_dmg_exp):
            counts[e.crop_dmg_exp] += 1
    return dict(counts.most_common())


# ---------------- Aggregator ----------------
def _aggregate(
    events: Sequence,
    metrics: Tuple[str, str],
    getters: Tuple[Callable[[object], float], Callable[[object], float]],
    fold_labels: bool,
) -> Tuple[SummaryRow, ...]:
    label_key = folded_label if fold_labels else exact_label
    index = build_type_index(events, label_key)

    rows: List[SummaryRow] = []
    for label, positions in index.items():
        first = sum(_finite(getters[0](events[p])) for p in positions)
        second = sum(_finite(getters[1](events[p])) for p in positions)
        if first + second > 0:
            rows.append(SummaryRow(event_type=label, metrics=metrics, first=first, second=second))

    return tuple(merge_sort(rows, key=lambda r: r.rank_key, reverse=True))

def summarize_health(events: Sequence, *, fold_labels: bool = False) -> Tuple[SummaryRow, ...]:
    """Total fatalities and injuries per event type, most harmful first.

    Accepts StormEvent or NormalizedEvent records.
    """
    def _ev(x):
        return x.event if isinstance(x, NormalizedEvent) else x
    return _aggregate(
        events,
        HEALTH_METRICS,
        (lambda x: _ev(x).fatalities, lambda x: _ev(x).injuries),
        fold_labels,
    )

def summarize_economic(events: Sequence[NormalizedEvent], *, fold_labels: bool = False) -> Tuple[SummaryRow, ...]:
    """Total property and crop cost (US$) per event type, costliest first."""
    return _aggregate(
        events,
        ECONOMIC_METRICS,
        (lambda x: x.prop_cost, lambda x: x.crop_cost),
        fold_labels,
    )

def label_fragments(events: Iterable) -> Dict[str, Tuple[str, ...]]:
    """Labels that only differ by case/whitespace (they form separate groups)."""
    unique = dict.fromkeys(e.event_type for e in events)
    return fragment_index(list(unique))


# ---------------- Reshaper ----------------
def top_n(rows: Sequence[SummaryRow], n: int = 10) -> Tuple[SummaryRow, ...]:
    if n < 0:
        raise ValueError("n must be >= 0")
    return tuple(rows[:n])

def reshape_long(rows: Iterable[SummaryRow]) -> Tuple[ImpactTriple, ...]:
    """Two (event type, metric, value) triples per row, first metric first."""
    out: List[ImpactTriple] = []
    for r in rows:
        out.append(ImpactTriple(r.event_type, r.metrics[0], r.first))
        out.append(ImpactTriple(r.event_type, r.metrics[1], r.second))
    return tuple(out)


# ---------------- Whole pipeline ----------------
def summarize(events: Sequence[StormEvent], config: Optional[PipelineConfig] = None) -> ImpactSummary:
    """Filter, normalize and aggregate one dataset."""
    config = config or PipelineConfig()

    impactful = filter_impactful(events)
    log.info("%d of %d records have recorded impact", len(impactful), len(events))

    normalized = normalize_costs(impactful, config.magnitudes)
    health = summarize_health(normalized, fold_labels=config.fold_labels)
    economic = summarize_economic(normalized, fold_labels=config.fold_labels)
    log.info("Health summary: %d event types | economic summary: %d event types",
             len(health), len(economic))

    unrecognized = audit_magnitude_codes(impactful, config.magnitudes)
    if unrecognized:
        log.warning("Unrecognized magnitude codes resolved with multiplier %s: %s",
                    config.magnitudes.default, unrecognized)

    fragments = label_fragments(impactful)
    if fragments and not config.fold_labels:
        log.warning("%d event types are split across differently spelled labels", len(fragments))

    return ImpactSummary(
        health=health,
        economic=economic,
        total_records=len(events),
        impactful_records=len(impactful),
        unrecognized_codes=unrecognized,
        label_fragments=fragments,
        labels_folded=config.fold_labels,
    )
