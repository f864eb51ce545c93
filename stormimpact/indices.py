"""
Grouping index
==============

Maps each event-type label to the positions of its records, in first-seen
order. The aggregator walks this index once per summary table.

Example:
- `by_type["TORNADO"]` gives the positions of every TORNADO record.
- `list(by_type)` gives the labels in the order they first appeared.
"""

from __future__ import annotations
from typing import Callable, Dict, List, Sequence, Tuple

from .models import NormalizedEvent


def exact_label(label: str) -> str:
    return label


def folded_label(label: str) -> str:
    """Case- and whitespace-insensitive spelling of a label."""
    return " ".join(label.split()).upper()


def build_type_index(
    events: Sequence[NormalizedEvent],
    label_key: Callable[[str], str] = exact_label,
) -> Dict[str, List[int]]:
    """Group record positions by (keyed) event-type label.

    Dicts keep insertion order, so groups come out in first-appearance order.
    """
    by_type: Dict[str, List[int]] = {}
    for pos, e in enumerate(events):
        by_type.setdefault(label_key(e.event_type), []).append(pos)
    return by_type


def fragment_index(labels: Sequence[str]) -> Dict[str, Tuple[str, ...]]:
    """Return folded label -> raw spellings, for labels with more than one spelling."""
    spellings: Dict[str, List[str]] = {}
    for label in labels:
        seen = spellings.setdefault(folded_label(label), [])
        if label not in seen:
            seen.append(label)
    return {k: tuple(v) for k, v in spellings.items() if len(v) > 1}
