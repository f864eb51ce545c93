"""
Dataset loader (CSV -> StormEvent list)
=======================================

This module downloads the storm database extract (once, then reuses the
cached copy) and converts each row into a `StormEvent` object.

Key ideas:
- The cache is written through a temporary file, so a failed download never
  leaves a truncated file that later runs would trust.
- We match column names exactly first, then ignoring case/punctuation.
- Blank numeric cells count as 0; anything else that is not a number is a
  malformed row and stops the run.
"""

from __future__ import annotations
import logging
import re
from pathlib import Path
from typing import List, Optional, Union

import numpy as np
import pandas as pd
import requests

from .config import REQUIRED_COLUMNS
from .models import StormEvent

log = logging.getLogger(__name__)

PathLike = Union[str, Path]

COUNT_FIELDS = ("fatalities", "injuries")
AMOUNT_FIELDS = ("prop_dmg", "crop_dmg")
CODE_FIELDS = ("prop_dmg_exp", "crop_dmg_exp")


class StormDataError(Exception):
    """Base class for fatal dataset errors."""


class DatasetFetchError(StormDataError):
    """The dataset could not be downloaded and no cached copy exists."""


class DatasetParseError(StormDataError, ValueError):
    """The dataset is missing a required column or has a malformed row."""


# -----------------------------
# Download + cache
# -----------------------------

def fetch_dataset(url: str, cache_path: PathLike, *, timeout: float = 60.0,
                  chunk_size: int = 1 << 16) -> Path:
    """Return a local copy of `url`, downloading it only if not cached yet."""
    cache_path = Path(cache_path)
    if cache_path.exists():
        log.info("Using cached dataset %s", cache_path)
        return cache_path

    cache_path.parent.mkdir(parents=True, exist_ok=True)
    partial = cache_path.with_name(cache_path.name + ".part")
    log.info("Downloading %s -> %s", url, cache_path)
    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with open(partial, "wb") as f:
                for chunk in response.iter_content(chunk_size=chunk_size):
                    if chunk:
                        f.write(chunk)
        partial.replace(cache_path)
    except (requests.RequestException, OSError) as e:
        partial.unlink(missing_ok=True)
        raise DatasetFetchError(f"Could not download {url}: {e}") from e

    log.info("Downloaded %.1f MB", cache_path.stat().st_size / 1024 / 1024)
    return cache_path


# -----------------------------
# Parsing helpers
# -----------------------------

def _to_str(x) -> str:
    if pd.isna(x): return ""
    return str(x).strip()

def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())

def _col(df: pd.DataFrame, *names: str) -> str:
    cols = list(df.columns)
    for n in names:
        if n in cols:
            return n
    norm_map = {_norm(c): c for c in cols}
    for n in names:
        nn = _norm(n)
        if nn in norm_map:
            return norm_map[nn]
    raise DatasetParseError(f"Missing required column. Tried={names}. Available={cols}")

def _numeric(df: pd.DataFrame, col: str, integral: bool = False) -> pd.Series:
    """Coerce a column to float, rejecting non-numeric, non-finite or negative cells.

    With `integral`, fractional values are rejected too. Blank cells become 0.
    """
    raw = df[col]
    values = pd.to_numeric(raw, errors="coerce")
    present = values.notna()
    bad = ~present & raw.notna() & (raw.astype(str).str.strip() != "")
    bad |= present & ~np.isfinite(values)
    bad |= values < 0
    if integral:
        bad |= present & np.isfinite(values) & (values != values.round())
    if bad.any():
        row = bad.idxmax()
        raise DatasetParseError(
            f"Malformed value {raw[row]!r} in column {col!r} at row {row}"
        )
    return values.fillna(0.0)


def parse_storm_frame(df: pd.DataFrame) -> List[StormEvent]:
    """Convert a raw storm database DataFrame into StormEvent records."""
    df = df.rename(columns={c: str(c).strip() for c in df.columns})
    cols = {f: _col(df, name) for f, name in REQUIRED_COLUMNS.items()}

    numeric = {f: _numeric(df, cols[f], integral=True) for f in COUNT_FIELDS}
    numeric.update({f: _numeric(df, cols[f]) for f in AMOUNT_FIELDS})
    codes = {f: df[cols[f]].map(_to_str) for f in CODE_FIELDS}
    # event type labels are kept verbatim; grouping decides about folding
    labels = df[cols["event_type"]].map(lambda x: "" if pd.isna(x) else str(x))

    events: List[StormEvent] = []
    for i, (label, fat, inj, pd_, pe, cd, ce) in enumerate(zip(
        labels, numeric["fatalities"], numeric["injuries"],
        numeric["prop_dmg"], codes["prop_dmg_exp"],
        numeric["crop_dmg"], codes["crop_dmg_exp"],
    )):
        events.append(StormEvent(
            event_id=i,
            event_type=label,
            fatalities=int(fat),
            injuries=int(inj),
            prop_dmg=float(pd_),
            prop_dmg_exp=pe,
            crop_dmg=float(cd),
            crop_dmg_exp=ce,
        ))
    return events


def load_storm_csv(path: PathLike) -> List[StormEvent]:
    """
    Read the storm database CSV (compression inferred from the extension).
    Only the required columns are converted; everything else is ignored.
    """
    try:
        # only empty cells are missing; "NA", "NULL", "None" labels stay verbatim
        df = pd.read_csv(path, dtype=str, keep_default_na=False, na_values=[""],
                         low_memory=False)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise DatasetParseError(f"Could not read {path}: {e}") from e
    events = parse_storm_frame(df)
    log.info("Parsed %d records from %s", len(events), path)
    return events


def load_events(url: str, cache_path: PathLike, *, timeout: Optional[float] = 60.0) -> List[StormEvent]:
    """Fetch (or reuse) the dataset and parse it."""
    path = fetch_dataset(url, cache_path, timeout=timeout)
    return load_storm_csv(path)
