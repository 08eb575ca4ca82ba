"""FileReportClient — Markdown + JSON reports on local disk."""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from qarun.core.exceptions import ReportError
from qarun.core.models import ReportModel, ReportStatus, StepRecord, StepStatus
from qarun.engine.baseline import safe_name
from qarun.reporters.base import BaseReportClient

if TYPE_CHECKING:
    from qarun.core.models import DiffResult
    from qarun.engine.baseline import BaselineDiffer


class FileReportClient(BaseReportClient):
    """Write each report to {reports_dir}/{report_id}/.

    Creates:
        - report.md     (human-readable, one section per suite)
        - steps.jsonl   (machine-readable, one record per line)
        - summary.json  (written on completion)
        - screenshots/  (evidence attached to records)
    """

    def __init__(self, reports_dir: Path, differ: BaselineDiffer) -> None:
        self._reports_dir = reports_dir
        self._differ = differ

    def report_dir(self, report_id: str) -> Path:
        return self._reports_dir / report_id

    async def create_empty_report(self, report: ReportModel) -> str:
        report_id = uuid.uuid4().hex
        try:
            directory = self.report_dir(report_id)
            directory.mkdir(parents=True, exist_ok=False)
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            lines = [
                f"# Test Report: {report.digital_product}",
                "",
                f"**Report ID:** {report_id}",
                f"**Organization:** {report.organization}",
                f"**Base URL:** {report.base_url}",
                f"**Environment:** {report.environment.value}",
                f"**Created:** {timestamp}",
                "",
            ]
            (directory / "report.md").write_text("\n".join(lines), encoding="utf-8")
        except OSError as exc:
            msg = f"Report creation failed: {exc}"
            raise ReportError(msg) from exc
        return report_id

    async def compare_screenshots(self, key: str, screenshot: bytes) -> DiffResult:
        return await self._differ.compare_screenshots(key, screenshot)

    async def upload_suite(
        self,
        report: ReportModel,
        suite: str,
        records: list[StepRecord],
    ) -> None:
        directory = self._existing_dir(report)
        try:
            shots = directory / "screenshots"
            lines = [
                f"## Suite: {suite}",
                "",
                "| # | Tag | Step | Status | Evidence |",
                "|---|-----|------|--------|----------|",
            ]
            with open(directory / "steps.jsonl", "a", encoding="utf-8") as f:  # noqa: PTH123
                for index, record in enumerate(records, start=1):
                    evidence = ""
                    if record.screenshot is not None:
                        shots.mkdir(exist_ok=True)
                        name = f"{safe_name(suite)}_{index:03d}.png"
                        (shots / name).write_bytes(record.screenshot)
                        evidence = f"[screenshot](screenshots/{name})"
                    lines.append(
                        f"| {index} | {record.tag} | {record.keyword.value} "
                        f"{record.message} | {record.status.value} | {evidence} |"
                    )
                    data = record.model_dump(mode="json", exclude={"screenshot"})
                    data["suite"] = suite
                    f.write(json.dumps(data, ensure_ascii=False) + "\n")
            lines.append("")
            with open(directory / "report.md", "a", encoding="utf-8") as f:  # noqa: PTH123
                f.write("\n".join(lines) + "\n")
        except OSError as exc:
            msg = f"Suite upload failed ({suite}): {exc}"
            raise ReportError(msg) from exc

    async def complete_report(self, report: ReportModel, status: ReportStatus) -> None:
        directory = self._existing_dir(report)
        summary = _build_summary(directory / "steps.jsonl")
        # Everything uploaded for the report counts, not just the last invocation
        if summary["by_status"][StepStatus.FAILED.value]:
            status = ReportStatus.FAILED
        summary["report_id"] = report.report_id
        summary["status"] = status.value
        try:
            (directory / "summary.json").write_text(
                json.dumps(summary, indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            with open(directory / "report.md", "a", encoding="utf-8") as f:  # noqa: PTH123
                f.write(f"**Status:** {status.value.upper()}\n")
        except OSError as exc:
            msg = f"Report completion failed: {exc}"
            raise ReportError(msg) from exc

    def _existing_dir(self, report: ReportModel) -> Path:
        if report.report_id is None:
            msg = "Report has no id; create_empty_report() must run first"
            raise ReportError(msg)
        directory = self.report_dir(report.report_id)
        if not directory.is_dir():
            msg = f"Unknown report: {report.report_id}"
            raise ReportError(msg)
        return directory


def _build_summary(steps_path: Path) -> dict[str, object]:
    """Count steps by status from steps.jsonl."""
    counts = {status.value: 0 for status in StepStatus}
    suites: list[str] = []
    if steps_path.exists():
        for line in steps_path.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            data = json.loads(line)
            counts[data["status"]] = counts.get(data["status"], 0) + 1
            if data["suite"] not in suites:
                suites.append(data["suite"])
    return {
        "total_steps": sum(counts.values()),
        "by_status": counts,
        "suites": suites,
    }
