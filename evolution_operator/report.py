"""Building, rendering and exporting dispatch reports."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterable, List, MutableMapping, Optional, Union

import pandas as pd

from .models import CandidateSet, DeliveryOutcome, DeliveryStatus, DispatchReport

PathLike = Union[str, Path]

HEADER = "number,status,message"
_UNSAFE = re.compile(r"[,\r\n]")


def build_report(
    candidates: CandidateSet,
    outcomes: Iterable[DeliveryOutcome],
    *,
    validation_enabled: bool,
) -> DispatchReport:
    """Order outcomes by candidate position and compute the summary counts."""

    by_identifier: Dict[str, DeliveryOutcome] = {}
    for outcome in outcomes:
        if outcome.identifier not in candidates:
            raise ValueError(f"Outcome for unknown candidate '{outcome.identifier}'")
        if outcome.identifier in by_identifier:
            raise ValueError(f"Duplicate outcome for candidate '{outcome.identifier}'")
        by_identifier[outcome.identifier] = outcome

    missing = [identifier for identifier in candidates if identifier not in by_identifier]
    if missing:
        raise ValueError(f"No outcome recorded for: {', '.join(missing)}")

    ordered = tuple(by_identifier[identifier] for identifier in candidates)
    counts = {status: 0 for status in DeliveryStatus}
    for outcome in ordered:
        counts[outcome.status] += 1

    return DispatchReport(
        sent_count=counts[DeliveryStatus.SENT],
        failed_count=counts[DeliveryStatus.FAILED],
        skipped_count=counts[DeliveryStatus.SKIPPED],
        total_count=len(candidates),
        outcomes=ordered,
        validation_enabled=validation_enabled,
    )


def escape_detail(detail: Optional[str]) -> str:
    """Keep a detail message on one line and inside its column."""

    if not detail:
        return ""
    return _UNSAFE.sub(" ", detail)


def summary_line(report: DispatchReport) -> str:
    parts = [f"Sent: {report.sent_count}", f"Failed: {report.failed_count}"]
    if report.validation_enabled:
        parts.append(f"Skipped: {report.skipped_count}")
    parts.append(f"Total: {report.total_count}")
    return ", ".join(parts)


def render_report(report: DispatchReport) -> str:
    lines: List[str] = [HEADER]
    for outcome in report.outcomes:
        line = f"{outcome.identifier},{outcome.status.value}"
        if outcome.detail:
            line += f",{escape_detail(outcome.detail)}"
        lines.append(line)
    lines.append("")
    lines.append(summary_line(report))
    return "\n".join(lines)


def report_to_dataframe(report: DispatchReport) -> pd.DataFrame:
    """Convert the per-number outcomes into a :class:`pandas.DataFrame`."""

    rows = [outcome.as_row() for outcome in report.outcomes]
    return pd.DataFrame(rows, columns=["number", "status", "message"])


def write_report(
    path: PathLike,
    report: DispatchReport,
    *,
    sheet_name: str = "Report",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Persist the report as text, CSV/TSV or Excel depending on the suffix."""

    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = output_path.suffix.lower()

    if suffix in {".txt", ""}:
        output_path.write_text(render_report(report) + "\n", encoding="utf-8")
        return output_path

    exporter_kwargs = dict(exporter_kwargs or {})
    dataframe = report_to_dataframe(report)

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        dataframe.to_csv(output_path, index=False, **exporter_kwargs)
        return output_path

    if suffix in {".xlsx", ".xlsm"}:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        dataframe.to_excel(output_path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
        return output_path

    raise ValueError(f"Unsupported export file extension: {suffix}")


__all__ = [
    "HEADER",
    "build_report",
    "escape_detail",
    "render_report",
    "report_to_dataframe",
    "summary_line",
    "write_report",
]
