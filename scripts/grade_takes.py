#!/usr/bin/env python
"""Grade recorded takes against a score sheet.

Usage:
    uv run python scripts/grade_takes.py --score excerpt.csv take1.csv take2.csv
    uv run python scripts/grade_takes.py --score excerpt.csv --target-bpm 96 --json report.json takes/*.csv
    uv run python scripts/grade_takes.py --score excerpt.csv --model teacher.csv takes/*.csv

Prints the takes that failed alignment and a per-take summary of the
deviation metrics. Exit status is 1 when the score sheet is invalid, 2
when it was auto-repaired (run again) and 3 when a take file is unreadable.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from performance_grader import EventFormatError, ScoreAutoRepaired, ScoreStructureError, analyze_files
from performance_grader.alignment import HEADER_ROWS
from performance_grader.deviation import MetricSeries


def summarize(series: MetricSeries) -> str:
    """One-line summary of a metric series."""
    if not series.available:
        return f"{series.metric}: no data ({series.reason})"
    values = series.values()
    baseline = f", baseline={series.baseline:.2f}" if series.baseline is not None else ""
    spread = f"range=[{values.min():.2f}, {values.max():.2f}]"
    return f"{series.metric}: n={len(values)}, mean={values.mean():.2f}, {spread}{baseline}"


def main() -> int:
    parser = argparse.ArgumentParser(description="Align takes to a score sheet and compute deviations")
    parser.add_argument("takes", nargs="+", type=Path, help="Take event tables (CSV)")
    parser.add_argument("--score", required=True, type=Path, help="Score sheet (CSV)")
    parser.add_argument(
        "--target-bpm",
        type=float,
        default=None,
        help="Target tempo; IOI deviations are relative to it instead of the take mean",
    )
    parser.add_argument(
        "--model",
        type=Path,
        default=None,
        help="Model performance (CSV); IOI and velocity are also compared with it line by line",
    )
    parser.add_argument(
        "--header-rows",
        type=int,
        default=HEADER_ROWS,
        help=f"Header rows to skip in each take file (default: {HEADER_ROWS})",
    )
    parser.add_argument("--json", type=Path, default=None, help="Write the full report to this JSON file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log alignment details")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        report = analyze_files(
            args.score,
            args.takes,
            target_bpm=args.target_bpm,
            model_path=args.model,
            header_rows=args.header_rows,
        )
    except ScoreStructureError as exc:
        print(f"Error in score sheet:\n{exc}", file=sys.stderr)
        return 1
    except ScoreAutoRepaired as notice:
        print(str(notice), file=sys.stderr)
        return 2
    except EventFormatError as exc:
        print(f"Error in take file:\n{exc}", file=sys.stderr)
        return 3

    if report.bad_takes:
        print("Takes that failed alignment:")
        for name in report.bad_takes:
            print(f"  - {name}")

    for deviations in report.deviations:
        print(f"\n{deviations.name}")
        for series in deviations.metrics():
            print(f"  {summarize(series)}")

    if args.json is not None:
        args.json.write_text(json.dumps(report.to_dict(), indent=2))
        print(f"\nReport written to {args.json}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
