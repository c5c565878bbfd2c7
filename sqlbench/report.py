"""Human-readable and JSON reports for benchmark measurements."""

import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TextIO

from .stats import Measurement

_TIME_UNITS = ((1e9, "s"), (1e6, "ms"), (1e3, "us"), (1.0, "ns"))
_BYTE_UNITS = ((1024 ** 3, "GB"), (1024 ** 2, "MB"), (1024, "KB"), (1, "B"))


def format_duration(ns: float) -> str:
    """Scale nanoseconds to the largest unit that keeps the value >= 1."""
    for factor, unit in _TIME_UNITS:
        if abs(ns) >= factor:
            return f"{ns / factor:.3f} {unit}"
    return f"{ns:.3f} ns"


def format_bytes(size: float) -> str:
    for factor, unit in _BYTE_UNITS:
        if abs(size) >= factor:
            if unit == "B":
                return f"{int(size)} B"
            return f"{size / factor:.2f} {unit}"
    return "0 B"


COLUMNS = (
    ("Mean", lambda m: format_duration(m.mean_ns)),
    ("Error", lambda m: format_duration(m.error_ns)),
    ("StdDev", lambda m: format_duration(m.stddev_ns)),
    ("P95", lambda m: format_duration(m.p95_ns)),
    ("Allocated", lambda m: format_bytes(m.allocated_bytes)),
)


def format_summary(measurements: Sequence[Measurement]) -> str:
    """Fixed-width table, one row per scenario. Failed scenarios show their error."""
    if not measurements:
        return "No scenarios were run."

    max_name_length = max(len(m.scenario) for m in measurements)
    name_width = max(25, max_name_length + 2)
    col_width = 12

    header = f"{'Scenario':<{name_width}}" + "".join(f"{title:>{col_width}}" for title, _ in COLUMNS)
    lines = [header, "-" * len(header)]
    for m in measurements:
        if m.failed:
            lines.append(f"{m.scenario:<{name_width}}  FAILED: {m.error}")
            continue
        cells = "".join(f"{render(m):>{col_width}}" for _, render in COLUMNS)
        lines.append(f"{m.scenario:<{name_width}}{cells}")
    return "\n".join(lines)


def format_bar_chart(measurements: Sequence[Measurement], max_width: int = 40) -> str:
    """ASCII bars of mean latency, scaled to the slowest scenario."""
    ok = [m for m in measurements if not m.failed]
    if not ok:
        return ""
    max_value = max(m.mean_ns for m in ok)
    name_width = max(len(m.scenario) for m in ok) + 2
    lines = []
    for m in ok:
        bar_length = int((m.mean_ns / max_value) * max_width) if max_value > 0 else 0
        bar = "█" * bar_length + "░" * (max_width - bar_length)
        lines.append(f"{m.scenario:<{name_width}} {bar} {format_duration(m.mean_ns)}")
    return "\n".join(lines)


def print_summary(measurements: Sequence[Measurement], stream: Optional[TextIO] = None) -> None:
    stream = stream or sys.stdout
    print("\n" + "=" * 100, file=stream)
    print("BENCHMARK RESULTS", file=stream)
    print("=" * 100, file=stream)
    print(format_summary(measurements), file=stream)
    chart = format_bar_chart(measurements)
    if chart:
        print("\nMean latency:", file=stream)
        print(chart, file=stream)
    failed = [m.scenario for m in measurements if m.failed]
    if failed:
        print(f"\n{len(failed)} scenario(s) failed: {', '.join(failed)}", file=stream)


def save_results(measurements: Sequence[Measurement], out_dir: Path, metadata: Optional[Dict[str, Any]] = None) -> Path:
    """Write ``results.json`` with run metadata under ``out_dir``."""
    out_dir.mkdir(parents=True, exist_ok=True)
    results_data = {
        "metadata": {
            "timestamp": datetime.now().isoformat(),
            **(metadata or {}),
        },
        "results": [m.to_dict() for m in measurements],
    }
    results_path = out_dir / "results.json"
    with open(results_path, "w") as f:
        json.dump(results_data, f, indent=2)
    return results_path


def load_results(path: Path) -> List[Measurement]:
    with open(path) as f:
        data = json.load(f)
    return [Measurement(**item) for item in data["results"]]
