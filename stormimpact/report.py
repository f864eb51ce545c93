from __future__ import annotations

"""
Storm impact report generator
-----------------------------
This module turns an `ImpactSummary` into a DOCX report with two grouped
bar charts (health impact, economic impact) and narrative text.

Design goals:
- Keep the pipeline usable without report dependencies (lazy imports).
- Charts are drawn in a temporary directory and the DOCX is written last,
  so a failed run leaves neither a half-finished report nor stray charts.
- Costs are plotted in billions of US$ so the bars stay readable.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union
import csv
import json
import logging
import os
import shutil
import tempfile

from .engine import reshape_long, top_n
from .models import ImpactSummary, ImpactTriple, SummaryRow

log = logging.getLogger(__name__)

PathLike = Union[str, Path]

BILLION = 1e9

METRIC_LABELS: Dict[str, str] = {
    "fatalities": "Fatalities",
    "injuries": "Injuries",
    "prop_cost": "Property damage",
    "crop_cost": "Crop damage",
}


# -----------------------------
# Configuration / citation types
# -----------------------------

@dataclass
class DatasetCitation:
    """Minimal dataset citation metadata for the DOCX report."""
    database_name: str = "NOAA Storm Database"
    institutional_author: str = "U.S. National Oceanic and Atmospheric Administration"
    website: str = "https://www.ncdc.noaa.gov/stormevents/"
    file_name: Optional[str] = None
    source_url: Optional[str] = None


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "Health and Economic Impact of Severe Weather Events"
    subtitle: str = "United States, NOAA Storm Database"
    citation: DatasetCitation = field(default_factory=DatasetCitation)

    # How many event types to show in bar charts / tables
    top_n: int = 10


# -----------------------------
# Formatting helpers
# -----------------------------

def _fmt_count(v: float) -> str:
    return f"{int(round(v)):,}"

def _fmt_billions(v: float) -> str:
    return f"{v / BILLION:,.2f}"

def _pyplot():
    # Lazy imports: only required when charts are drawn.
    try:
        import matplotlib.pyplot as plt
        import numpy as np
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib (and numpy).\n"
            "Install with: python -m pip install matplotlib numpy"
        ) from e
    return plt, np


# -----------------------------
# Charts
# -----------------------------

def render_grouped_bar(
    triples: Sequence[ImpactTriple],
    out_path: PathLike,
    *,
    title: str,
    ylabel: str,
    scale: float = 1.0,
) -> str:
    """
    Grouped bar chart: one group per event type, one bar per metric.

    Event types and metrics keep the order they have in `triples`, so a
    ranked top-N list is drawn left to right from the largest rank key.
    """
    plt, np = _pyplot()

    labels: List[str] = list(dict.fromkeys(t.event_type for t in triples))
    metrics: List[str] = list(dict.fromkeys(t.metric for t in triples))
    values = {(t.event_type, t.metric): t.value / scale for t in triples}

    x = np.arange(len(labels))
    width = 0.8 / max(len(metrics), 1)

    fig, ax = plt.subplots(figsize=(10, 6))
    for i, metric in enumerate(metrics):
        heights = [values.get((label, metric), 0.0) for label in labels]
        ax.bar(x + (i - (len(metrics) - 1) / 2) * width, heights, width,
               label=METRIC_LABELS.get(metric, metric))
    ax.set_xticks(x)
    ax.set_xticklabels(labels, rotation=45, ha="right")
    ax.set_title(title)
    ax.set_xlabel("Event type")
    ax.set_ylabel(ylabel)
    if metrics:
        ax.legend()

    out_path = str(out_path)
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    fig.tight_layout()
    fig.savefig(out_path, dpi=200)
    plt.close(fig)
    log.debug("Chart written to %s", out_path)
    return out_path


# -----------------------------
# Narrative text
# -----------------------------

def health_narrative(rows: Sequence[SummaryRow]) -> str:
    if not rows:
        return "No event type in the dataset caused recorded fatalities or injuries."
    lead = rows[0]
    total = sum(r.rank_key for r in rows)
    share = 100.0 * lead.rank_key / total if total else 0.0
    return (
        f"{lead.event_type} is the event type most harmful to population health, with "
        f"{_fmt_count(lead.value('fatalities'))} fatalities and "
        f"{_fmt_count(lead.value('injuries'))} injuries, "
        f"{share:.1f}% of all casualties recorded across {len(rows)} event types."
    )

def economic_narrative(rows: Sequence[SummaryRow]) -> str:
    if not rows:
        return "No event type in the dataset caused recorded property or crop damage."
    lead = rows[0]
    crop_lead = max(rows, key=lambda r: r.value("crop_cost"))
    total = sum(r.rank_key for r in rows)
    share = 100.0 * lead.rank_key / total if total else 0.0
    text = (
        f"{lead.event_type} has the greatest economic consequences, with "
        f"{_fmt_billions(lead.value('prop_cost'))} billion US$ in property damage and "
        f"{_fmt_billions(lead.value('crop_cost'))} billion US$ in crop damage, "
        f"{share:.1f}% of all recorded damage."
    )
    if crop_lead.event_type != lead.event_type and crop_lead.value("crop_cost") > 0:
        text += (
            f" Crop damage alone is dominated by {crop_lead.event_type} "
            f"({_fmt_billions(crop_lead.value('crop_cost'))} billion US$)."
        )
    return text

def top_note(shown: Sequence[SummaryRow], rows: Sequence[SummaryRow]) -> str:
    """Say how much of the full table the top-N chart covers."""
    total = sum(r.rank_key for r in rows)
    covered = sum(r.rank_key for r in shown)
    share = 100.0 * covered / total if total else 0.0
    return (
        f"The chart and table show the top {len(shown)} of {len(rows)} event types, "
        f"which account for {share:.1f}% of the total."
    )


# -----------------------------
# Exports
# -----------------------------

def export_summary_csv(rows: Sequence[SummaryRow], path: PathLike,
                       metrics: Optional[Sequence[str]] = None) -> None:
    """Write a summary table to CSV (one row per event type).

    An empty table is written as a header-only file; its metric columns
    come from `metrics`.
    """
    if rows:
        metrics = rows[0].metrics
    elif metrics is None:
        raise ValueError("metrics are required to export an empty summary table")
    with open(path, "w", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        w.writerow(["rank", "event_type", metrics[0], metrics[1], "rank_key"])
        for i, r in enumerate(rows, start=1):
            w.writerow([i, r.event_type, r.first, r.second, r.rank_key])

def export_summary_json(rows: Sequence[SummaryRow], path: PathLike) -> None:
    """Write a summary table to JSON, preserving field names."""
    payload = [dict(rank=i, **r.as_dict()) for i, r in enumerate(rows, start=1)]
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


# -----------------------------
# Main entry point used by CLI
# -----------------------------

def generate_docx_report(
    summary: ImpactSummary,
    out_path: PathLike,
    *,
    config: Optional[ReportConfig] = None,
) -> str:
    """
    Generate a DOCX report + two charts for one pipeline run.

    Charts are drawn in a temporary directory and moved next to the report
    as PNG files only once the DOCX has been saved.
    """
    config = config or ReportConfig()

    try:
        from docx import Document
        from docx.shared import Pt, Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e

    if not summary.health and not summary.economic:
        raise ValueError("No events to report on (no recorded impact in the dataset).")

    out_path = str(out_path)
    out_dir = os.path.dirname(out_path) or "."
    stem = os.path.splitext(os.path.basename(out_path))[0]

    health_top = top_n(summary.health, config.top_n)
    economic_top = top_n(summary.economic, config.top_n)

    tmpdir = tempfile.mkdtemp(prefix="stormimpact_report_")
    try:
        # -----------------------------
        # 1) Charts
        # -----------------------------
        health_chart = render_grouped_bar(
            reshape_long(health_top),
            os.path.join(tmpdir, f"{stem}_health.png"),
            title=f"Top {len(health_top)} event types by fatalities + injuries",
            ylabel="People",
        )
        economic_chart = render_grouped_bar(
            reshape_long(economic_top),
            os.path.join(tmpdir, f"{stem}_economic.png"),
            title=f"Top {len(economic_top)} event types by property + crop damage",
            ylabel="Damage (billions of US$)",
            scale=BILLION,
        )

        # -----------------------------
        # 2) Build DOCX report
        # -----------------------------
        doc = Document()
        style = doc.styles["Normal"]
        style.font.name = "Calibri"
        style.font.size = Pt(11)

        def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
            p = doc.add_paragraph()
            r = p.add_run(text)
            r.bold = bold
            r.italic = italic
            r.font.size = Pt(size)
            p.alignment = WD_ALIGN_PARAGRAPH.CENTER

        def _kv(key: str, value: str) -> None:
            p = doc.add_paragraph()
            r = p.add_run(f"{key}: ")
            r.bold = True
            p.add_run(value)

        def _table(rows: Sequence[SummaryRow], headers: List[str], fmt) -> None:
            t = doc.add_table(rows=1, cols=len(headers))
            for i, h in enumerate(headers):
                t.rows[0].cells[i].text = h
            for rank, r in enumerate(rows, start=1):
                cells = t.add_row().cells
                cells[0].text = str(rank)
                cells[1].text = r.event_type
                cells[2].text = fmt(r.first)
                cells[3].text = fmt(r.second)
                cells[4].text = fmt(r.rank_key)

        _center_title(config.title, 22, bold=True)
        _center_title(config.subtitle, 12, italic=True)

        doc.add_heading("Synopsis", level=1)
        doc.add_paragraph(health_narrative(summary.health))
        doc.add_paragraph(economic_narrative(summary.economic))

        doc.add_heading("Data processing", level=1)
        cit = config.citation
        _kv("Dataset", cit.database_name)
        if cit.source_url:
            _kv("Source", cit.source_url)
        if cit.file_name:
            _kv("Data file used", cit.file_name)
        doc.add_paragraph(
            f"Suggested citation: {cit.institutional_author}. "
            f"{cit.database_name}. {cit.website}."
        )
        _kv("Records loaded", _fmt_count(summary.total_records))
        _kv("Records with recorded impact", _fmt_count(summary.impactful_records))
        doc.add_paragraph(
            "Records with no fatality, no injury and no property or crop damage were "
            "removed. Damage amounts are stored as a mantissa plus a magnitude code; "
            "codes K, M and B scale the mantissa by a thousand, a million and a billion. "
            "Event types are ranked by the sum of their two metrics."
        )

        doc.add_heading("Which event types are most harmful to population health?", level=1)
        doc.add_paragraph(top_note(health_top, summary.health))
        doc.add_picture(health_chart, width=Inches(6.5))
        _table(health_top, ["Rank", "Event type", "Fatalities", "Injuries", "Total"], _fmt_count)

        doc.add_heading("Which event types have the greatest economic consequences?", level=1)
        doc.add_paragraph(top_note(economic_top, summary.economic))
        doc.add_picture(economic_chart, width=Inches(6.5))
        _table(economic_top,
               ["Rank", "Event type", "Property (bn US$)", "Crop (bn US$)", "Total (bn US$)"],
               _fmt_billions)

        # Data quality notes
        doc.add_heading("Data quality notes", level=1)
        if summary.unrecognized_codes:
            doc.add_paragraph(
                "Damage amounts with a magnitude code other than K, M or B were counted "
                "as zero. Affected amounts per code:"
            )
            for code, n in summary.unrecognized_codes.items():
                doc.add_paragraph(f"{code or '(blank)'}: {n:,}", style="List Bullet")
        else:
            doc.add_paragraph("Every non-zero damage amount carried a K, M or B magnitude code.")

        if summary.label_fragments:
            if summary.labels_folded:
                doc.add_paragraph(
                    "Event type labels differing only in case or whitespace were merged:"
                )
            else:
                doc.add_paragraph(
                    "Event type labels are grouped by exact spelling. The following event "
                    "types appear under several spellings and are counted separately:"
                )
            for folded, spellings in list(summary.label_fragments.items())[:config.top_n * 2]:
                shown = ", ".join(repr(s) for s in spellings)
                doc.add_paragraph(f"{folded}: {shown}", style="List Bullet")

        # Reproducibility footer
        doc.add_heading("Reproducibility footer", level=1)
        from . import __version__
        from datetime import datetime as _dt
        doc.add_paragraph(f"stormimpact version: {__version__}")
        doc.add_paragraph(f"Report generated at: {_dt.now().isoformat(timespec='seconds')}")

        os.makedirs(out_dir, exist_ok=True)
        doc.save(out_path)
        for chart in (health_chart, economic_chart):
            shutil.move(chart, os.path.join(out_dir, os.path.basename(chart)))
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)

    log.info("Report written to %s", out_path)
    return out_path
