"""Tests for HttpReportClient — reporting API over httpx."""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from qarun.core.exceptions import ReportError
from qarun.core.models import (
    ExecutionEnvironment,
    ReportConfig,
    ReportModel,
    ReportStatus,
    StepKeyword,
    StepRecord,
    StepStatus,
)
from qarun.reporters import HttpReportClient, create_report_client
from qarun.reporters.markdown import FileReportClient

API = "https://reports.example.com"


class RecordingApi:
    """httpx MockTransport handler that records requests and returns canned JSON."""

    def __init__(self, responses: dict[str, httpx.Response] | None = None) -> None:
        self.responses = responses or {}
        self.requests: list[tuple[str, dict[str, Any]]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else {}
        self.requests.append((request.url.path, body))
        return self.responses.get(request.url.path, httpx.Response(204))

    def client(self) -> HttpReportClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(self), base_url=API)
        return HttpReportClient(ReportConfig(api_url=API), client=http)


def _report(report_id: str | None = None) -> ReportModel:
    return ReportModel(
        organization="acme",
        base_url="https://app.example.com",
        digital_product="storefront",
        environment=ExecutionEnvironment.DEV,
        report_id=report_id,
    )


class TestHttpReportClientInit:
    def test_requires_api_url(self) -> None:
        with pytest.raises(ReportError, match="api_url"):
            HttpReportClient(ReportConfig())

    @pytest.mark.asyncio
    async def test_bearer_header(self) -> None:
        client = HttpReportClient(ReportConfig(api_url=API + "/", api_key="k-1"))
        assert client._client.headers["Authorization"] == "Bearer k-1"
        assert str(client._client.base_url).rstrip("/") == API
        await client.aclose()

    def test_factory_selects_http(self) -> None:
        assert isinstance(create_report_client(ReportConfig(api_url=API)), HttpReportClient)

    def test_factory_selects_files(self) -> None:
        assert isinstance(create_report_client(ReportConfig()), FileReportClient)


class TestHttpReportLifecycle:
    @pytest.mark.asyncio
    async def test_create_empty_report(self) -> None:
        api = RecordingApi({"/reports": httpx.Response(201, json={"id": "r-42"})})
        report_id = await api.client().create_empty_report(_report())
        assert report_id == "r-42"
        path, body = api.requests[0]
        assert path == "/reports"
        assert body == {
            "organization": "acme",
            "baseUrl": "https://app.example.com",
            "digitalProduct": "storefront",
            "environment": "DEV",
        }

    @pytest.mark.asyncio
    async def test_create_accepts_report_id_key(self) -> None:
        api = RecordingApi({"/reports": httpx.Response(200, json={"reportId": 7})})
        assert await api.client().create_empty_report(_report()) == "7"

    @pytest.mark.asyncio
    async def test_create_without_id(self) -> None:
        api = RecordingApi({"/reports": httpx.Response(200, json={})})
        with pytest.raises(ReportError, match="no report id"):
            await api.client().create_empty_report(_report())

    @pytest.mark.asyncio
    async def test_upload_suite(self) -> None:
        api = RecordingApi()
        report = _report("r-1")
        report.next_suites = ["search"]
        records = [
            StepRecord(
                keyword=StepKeyword.THEN,
                tag="pay",
                message="I click on the '#buy'",
                status=StepStatus.PASSED,
            ),
            StepRecord(
                keyword=StepKeyword.THEN,
                tag="pay",
                message="The 'cart' screenshot matches the baseline",
                status=StepStatus.PASSED,
                screenshot=b"\x89PNG",
                diff_key="cart",
            ),
        ]
        await api.client().upload_suite(report, "checkout", records)

        path, body = api.requests[0]
        assert path == "/reports/r-1/suites"
        assert body["suite"] == "checkout"
        assert body["nextSuites"] == ["search"]
        first, second = body["steps"]
        assert first["name"] == "I click on the '#buy'"
        assert first["keyword"] == "Then"
        assert "screenshot" not in first
        assert second["screenshot"] == "iVBORw=="
        assert second["diffKey"] == "cart"

    @pytest.mark.asyncio
    async def test_upload_requires_id(self) -> None:
        with pytest.raises(ReportError, match="no id"):
            await RecordingApi().client().upload_suite(_report(), "checkout", [])

    @pytest.mark.asyncio
    async def test_complete_report(self) -> None:
        api = RecordingApi()
        await api.client().complete_report(_report("r-1"), ReportStatus.FAILED)
        assert api.requests == [("/reports/r-1/status", {"status": "failed"})]


class TestHttpScreenshotCompare:
    @pytest.mark.asyncio
    async def test_percent_returned(self) -> None:
        api = RecordingApi(
            {
                "/screenshots/compare": httpx.Response(
                    200, json={"presentDifferencePercent": "3.25"}
                )
            }
        )
        client = api.client()
        await client.upload_suite(_report("r-9"), "a", [])
        result = await client.compare_screenshots("home", b"png")
        assert result.present_difference_percent == 3.25
        _, body = api.requests[-1]
        assert body["reportId"] == "r-9"
        assert body["key"] == "home"

    @pytest.mark.asyncio
    async def test_no_baseline(self) -> None:
        api = RecordingApi(
            {"/screenshots/compare": httpx.Response(200, json={"presentDifferencePercent": None})}
        )
        result = await api.client().compare_screenshots("home", b"png")
        assert result.present_difference_percent is None
        assert "reportId" not in api.requests[0][1]


class TestHttpErrors:
    @pytest.mark.asyncio
    async def test_http_status_error(self) -> None:
        api = RecordingApi({"/reports/r-1/status": httpx.Response(500)})
        with pytest.raises(ReportError, match="HTTP 500"):
            await api.client().complete_report(_report("r-1"), ReportStatus.PASSED)

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=API)
        client = HttpReportClient(ReportConfig(api_url=API), client=http)
        with pytest.raises(ReportError, match="request failed"):
            await client.create_empty_report(_report())

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        api = RecordingApi({"/reports": httpx.Response(200, content=b"<html>")})
        with pytest.raises(ReportError, match="invalid JSON"):
            await api.client().create_empty_report(_report())
