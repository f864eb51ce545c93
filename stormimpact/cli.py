"""
Storm impact command line entry point
=====================================

Runs the whole report in one go:

    python -m stormimpact.cli

No arguments are needed; the optional flags only override the defaults in
`stormimpact.config`. The dataset is downloaded once and reused afterwards.
"""

from __future__ import annotations
import argparse
import logging
import os
from pathlib import Path
from typing import List, Optional

from .config import PipelineConfig
from .engine import summarize
from .loader import StormDataError, load_events
from .models import ECONOMIC_METRICS, HEALTH_METRICS
from .logger import setup_logger


def build_config(args: argparse.Namespace) -> PipelineConfig:
    cfg = PipelineConfig()
    if args.url:
        cfg.data_url = args.url
    if args.cache:
        cfg.cache_path = Path(args.cache)
    if args.out:
        out = Path(args.out)
        cfg.reports_dir = out.parent
        cfg.report_name = out.name
    if args.top_n is not None:
        cfg.top_n = args.top_n
    if args.export_dir:
        cfg.export_dir = Path(args.export_dir)
    cfg.fold_labels = args.fold_labels
    return cfg


def run(cfg: PipelineConfig) -> str:
    """Load -> summarize -> report. Returns the report path."""
    from .report import (
        DatasetCitation, ReportConfig, export_summary_csv, export_summary_json,
        generate_docx_report,
    )

    print("Loading dataset...")
    events = load_events(cfg.data_url, cfg.cache_path, timeout=cfg.timeout)
    print(f"Loaded {len(events):,} events.")

    summary = summarize(events, cfg)
    print(f"{summary.impactful_records:,} events with recorded impact.")

    report_cfg = ReportConfig(
        top_n=cfg.top_n,
        citation=DatasetCitation(
            file_name=os.path.basename(str(cfg.cache_path)),
            source_url=cfg.data_url,
        ),
    )
    path = generate_docx_report(summary, cfg.report_path, config=report_cfg)
    print(f"Report written to {path}")

    if cfg.export_dir:
        os.makedirs(cfg.export_dir, exist_ok=True)
        for name, rows, metrics in (
            ("health", summary.health, HEALTH_METRICS),
            ("economic", summary.economic, ECONOMIC_METRICS),
        ):
            export_summary_csv(rows, Path(cfg.export_dir) / f"{name}_summary.csv", metrics=metrics)
            export_summary_json(rows, Path(cfg.export_dir) / f"{name}_summary.json")
        print(f"Exported summary tables to {cfg.export_dir}")
    return path


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the stormimpact CLI."""
    ap = argparse.ArgumentParser(description="Storm impact report (NOAA Storm Database)")
    ap.add_argument("--url", help="Dataset URL")
    ap.add_argument("--cache", help="Local cache path for the downloaded dataset")
    ap.add_argument("--out", help="Path of the DOCX report")
    ap.add_argument("--top-n", type=int, help="Event types per chart (default 10)")
    ap.add_argument("--fold-labels", action="store_true",
                    help="Merge event type labels differing only by case/whitespace")
    ap.add_argument("--export-dir", help="Also write summary tables as CSV/JSON here")
    ap.add_argument("--log-file", help="Also write a debug log to this file")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)

    logger = setup_logger(
        "stormimpact",
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_file=args.log_file,
    )

    cfg = build_config(args)
    try:
        run(cfg)
    except (StormDataError, ValueError) as e:
        logger.error("Report generation failed: %s", e)
        print(f"Error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
