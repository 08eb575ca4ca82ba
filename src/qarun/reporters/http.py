"""HttpReportClient — uploads reports to the reporting API over HTTP."""

from __future__ import annotations

import base64
import logging
from typing import Any

import httpx

from qarun.core.exceptions import ReportError
from qarun.core.models import DiffResult, ReportConfig, ReportModel, ReportStatus, StepRecord
from qarun.reporters.base import BaseReportClient

logger = logging.getLogger(__name__)


class HttpReportClient(BaseReportClient):
    """JSON-over-HTTP report client.

    Endpoints (relative to ReportConfig.api_url):
        POST /reports                      -> {"id": ...}
        POST /screenshots/compare          -> {"presentDifferencePercent": ...}
        POST /reports/{id}/suites
        POST /reports/{id}/status
    """

    def __init__(
        self,
        config: ReportConfig,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not config.api_url:
            msg = "HttpReportClient requires report.api_url"
            raise ReportError(msg)
        headers = {"Authorization": f"Bearer {config.api_key}"} if config.api_key else {}
        self._client = client or httpx.AsyncClient(
            base_url=config.api_url.rstrip("/"),
            headers=headers,
            timeout=config.timeout_s,
        )
        self._report_id: str | None = None

    async def create_empty_report(self, report: ReportModel) -> str:
        data = await self._post(
            "/reports",
            {
                "organization": report.organization,
                "baseUrl": report.base_url,
                "digitalProduct": report.digital_product,
                "environment": report.environment.value,
            },
        )
        report_id = data.get("id") or data.get("reportId")
        if not report_id:
            msg = f"Report API returned no report id: {data}"
            raise ReportError(msg)
        self._report_id = str(report_id)
        logger.info("Created report %s", self._report_id)
        return self._report_id

    async def compare_screenshots(self, key: str, screenshot: bytes) -> DiffResult:
        payload: dict[str, Any] = {
            "key": key,
            "screenshot": base64.b64encode(screenshot).decode("ascii"),
        }
        if self._report_id:
            payload["reportId"] = self._report_id
        data = await self._post("/screenshots/compare", payload)
        percent = data.get("presentDifferencePercent")
        return DiffResult(
            key=key,
            present_difference_percent=None if percent is None else float(percent),
        )

    async def upload_suite(
        self,
        report: ReportModel,
        suite: str,
        records: list[StepRecord],
    ) -> None:
        report_id = self._require_id(report)
        await self._post(
            f"/reports/{report_id}/suites",
            {
                "suite": suite,
                "steps": [_record_payload(r) for r in records],
                "nextSuites": report.next_suites,
            },
        )

    async def complete_report(self, report: ReportModel, status: ReportStatus) -> None:
        report_id = self._require_id(report)
        await self._post(f"/reports/{report_id}/status", {"status": status.value})
        logger.info("Report %s completed: %s", report_id, status.value)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _require_id(self, report: ReportModel) -> str:
        if report.report_id is None:
            msg = "Report has no id; create_empty_report() must run first"
            raise ReportError(msg)
        self._report_id = report.report_id
        return report.report_id

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = await self._client.post(path, json=payload)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            msg = f"Report API {path} returned HTTP {e.response.status_code}"
            raise ReportError(msg) from e
        except httpx.HTTPError as e:
            msg = f"Report API {path} request failed: {e}"
            raise ReportError(msg) from e

        if not resp.content:
            return {}
        try:
            data = resp.json()
        except ValueError as e:
            msg = f"Report API {path} returned invalid JSON"
            raise ReportError(msg) from e
        return data if isinstance(data, dict) else {}


def _record_payload(record: StepRecord) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "keyword": record.keyword.value,
        "tag": record.tag,
        "name": record.message,
        "status": record.status.value,
        "timestamp": record.timestamp.isoformat(),
    }
    if record.screenshot is not None:
        payload["screenshot"] = base64.b64encode(record.screenshot).decode("ascii")
    if record.diff_key is not None:
        payload["diffKey"] = record.diff_key
    return payload
