#!/usr/bin/env python3
"""Build latency report: where does a build request spend its time?

Reads the JSONL interaction logs and summarizes the ``performance`` events
written after every build generation.

Usage:
    python -m astrobot.view_performance              # Today's log
    python -m astrobot.view_performance --days 7     # Last 7 days
    python -m astrobot.view_performance --file <path>
"""

import argparse
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from . import config

__all__ = ["load_performance_events", "summarize_performance", "main"]


def load_performance_events(log_files: List[Path]) -> List[Dict[str, Any]]:
    """Collect ``performance`` events from JSONL files, skipping bad lines."""
    events = []
    for log_file in log_files:
        if not log_file.exists():
            continue
        with open(log_file, "r", encoding="utf-8") as f:
            for line in f:
                try:
                    entry = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if entry.get("event_type") == "performance":
                    events.append(entry)
    return events


def summarize_performance(events: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Aggregate per-build totals and per-operation time.

    Returns:
        {"builds": n, "totals": {llm/app/total: {mean, p50, p95, max}},
         "operations": {name: total_seconds}} sorted by time spent.
    """
    rows = []
    operations: List[Dict[str, Any]] = []
    for event in events:
        timings = event.get("timings") or {}
        summary = timings.get("__summary__")
        if not summary:
            continue
        rows.append(
            {
                "build_id": event.get("build_id"),
                "total": summary.get("total_seconds", 0),
                "llm": summary.get("llm_seconds", 0),
                "app": summary.get("app_seconds", 0),
            }
        )
        for name, stats in timings.items():
            if name != "__summary__":
                operations.append({"operation": name, "seconds": stats.get("total_seconds", 0)})

    if not rows:
        return {"builds": 0, "totals": {}, "operations": {}}

    df = pd.DataFrame(rows)
    totals = {
        column: {
            "mean": round(float(df[column].mean()), 3),
            "p50": round(float(df[column].quantile(0.5)), 3),
            "p95": round(float(df[column].quantile(0.95)), 3),
            "max": round(float(df[column].max()), 3),
        }
        for column in ("total", "llm", "app")
    }
    by_operation = (
        pd.DataFrame(operations).groupby("operation")["seconds"].sum().sort_values(ascending=False)
    )
    return {
        "builds": len(df),
        "totals": totals,
        "operations": {name: round(float(seconds), 3) for name, seconds in by_operation.items()},
    }


def _log_files(days: int, log_dir: Optional[Path] = None) -> List[Path]:
    log_dir = log_dir or Path(config.LOG_DIR)
    today = datetime.now()
    return [
        log_dir / f"llm_interactions_{(today - timedelta(days=offset)).strftime('%Y%m%d')}.jsonl"
        for offset in range(days)
    ]


def print_report(report: Dict[str, Any]) -> None:
    if not report["builds"]:
        print("No performance events found")
        return

    print(f"Builds analysed: {report['builds']}\n")
    print(f"  {'':8s}{'mean':>10s}{'p50':>10s}{'p95':>10s}{'max':>10s}")
    for name, stats in report["totals"].items():
        print(
            f"  {name:8s}{stats['mean']:>9.2f}s{stats['p50']:>9.2f}s"
            f"{stats['p95']:>9.2f}s{stats['max']:>9.2f}s"
        )

    print("\n  Time by operation:")
    for name, seconds in report["operations"].items():
        print(f"    {name:35s}: {seconds:>8.2f}s")


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Summarize build generation latency")
    parser.add_argument("--file", type=Path, help="Analyze a specific log file")
    parser.add_argument("--days", type=int, default=1, help="Number of days to include")
    parser.add_argument("--json", action="store_true", help="Print the report as JSON")
    args = parser.parse_args(argv)

    files = [args.file] if args.file else _log_files(max(1, args.days))
    report = summarize_performance(load_performance_events(files))

    if args.json:
        print(json.dumps(report, indent=2))
    else:
        print_report(report)


if __name__ == "__main__":
    main()
