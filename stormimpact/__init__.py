"""
stormimpact package
===================

Health and economic impact of severe weather events, from the NOAA
Storm Database.

- The CLI entry point is in `stormimpact/cli.py`.
- The pipeline (filter, cost normalizer, aggregator, reshaper) is in `stormimpact/engine.py`.
- Dataset download and parsing is in `stormimpact/loader.py`.
- The DOCX report and charts are in `stormimpact/report.py`.
"""

__version__ = '0.1.0'
