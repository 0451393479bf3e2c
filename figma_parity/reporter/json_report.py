"""JSON report output."""

from __future__ import annotations

import json
from pathlib import Path

from figma_parity.models.report import ComparisonReport


def generate_json_report(report: ComparisonReport, output_path: Path) -> None:
    """Write a machine-readable JSON report with camelCase keys."""
    data = report.model_dump(mode="json", by_alias=True)
    with open(output_path, "w") as f:
        json.dump(data, f, indent=2, default=str)
