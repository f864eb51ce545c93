"""
Configuration
=============

Everything the pipeline needs to know before it starts lives here:
where the dataset comes from, where it is cached, where the report goes,
and how damage magnitude codes are resolved.

The magnitude table is passed explicitly to the cost normalizer instead of
being read from a module-level global, so tests can swap it freely.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

DATA_URL = "https://d396qusza40orc.cloudfront.net/repdata%2Fdata%2FStormData.csv.bz2"

DATA_DIR = Path("data")
CACHE_FILE = DATA_DIR / "StormData.csv.bz2"
REPORTS_DIR = Path("reports")

# Columns of the NOAA storm database extract used by the pipeline
REQUIRED_COLUMNS = {
    "event_type": "EVTYPE",
    "fatalities": "FATALITIES",
    "injuries": "INJURIES",
    "prop_dmg": "PROPDMG",
    "prop_dmg_exp": "PROPDMGEXP",
    "crop_dmg": "CROPDMG",
    "crop_dmg_exp": "CROPDMGEXP",
}

DEFAULT_MULTIPLIERS: Dict[str, float] = {"K": 1e3, "M": 1e6, "B": 1e9}


@dataclass(frozen=True)
class MagnitudeTable:
    """Maps a damage magnitude code to its multiplier.

    Codes are matched exactly (no case folding). Anything not in the table,
    including a blank code, resolves to `default`.
    """
    multipliers: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_MULTIPLIERS))
    default: float = 0.0

    def multiplier(self, code: Optional[str]) -> float:
        if code is None:
            return self.default
        return self.multipliers.get(code, self.default)

    def recognizes(self, code: Optional[str]) -> bool:
        return code is not None and code in self.multipliers


@dataclass
class PipelineConfig:
    """High-level knobs for one report run."""
    data_url: str = DATA_URL
    cache_path: Path = CACHE_FILE
    reports_dir: Path = REPORTS_DIR
    report_name: str = "storm_impact_report.docx"

    # How many event types to keep in each chart / table
    top_n: int = 10

    magnitudes: MagnitudeTable = field(default_factory=MagnitudeTable)

    # Merge labels that differ only by case/surrounding whitespace.
    # Off by default: fragments are reported instead of silently merged.
    fold_labels: bool = False

    # Seconds to wait on the download before giving up
    timeout: float = 60.0

    # Optional directory for CSV/JSON copies of the summary tables
    export_dir: Optional[Path] = None

    @property
    def report_path(self) -> Path:
        return Path(self.reports_dir) / self.report_name
