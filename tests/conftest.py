"""Shared fixtures: config, mock browser engine, in-memory report client."""

from __future__ import annotations

import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from qarun.core.models import (
    Config,
    DiffResult,
    ExecutionEnvironment,
    ReportModel,
    ReportStatus,
    StepRecord,
)
from qarun.reporters.base import BaseReportClient


def make_config(**overrides: object) -> Config:
    data: dict[str, object] = {
        "organization": "acme",
        "base_url": "https://app.example.com",
        "digital_product": "storefront",
        "timeout_ms": 5000,
    }
    data.update(overrides)
    return Config(**data)


class FakeReportClient(BaseReportClient):
    """In-memory report collaborator recording every call."""

    def __init__(self, diffs: dict[str, float | None] | None = None) -> None:
        self.diffs = diffs or {}
        self.created: list[str] = []
        self.uploads: list[tuple[str, str, list[StepRecord]]] = []
        self.completed: list[tuple[str, ReportStatus]] = []
        self.compared: list[str] = []
        self.closed = False

    async def create_empty_report(self, report: ReportModel) -> str:
        report_id = f"rep-{uuid.uuid4().hex[:8]}"
        self.created.append(report_id)
        return report_id

    async def compare_screenshots(self, key: str, screenshot: bytes) -> DiffResult:
        self.compared.append(key)
        return DiffResult(key=key, present_difference_percent=self.diffs.get(key))

    async def upload_suite(
        self, report: ReportModel, suite: str, records: list[StepRecord]
    ) -> None:
        assert report.report_id is not None
        self.uploads.append((report.report_id, suite, list(records)))

    async def complete_report(self, report: ReportModel, status: ReportStatus) -> None:
        assert report.report_id is not None
        self.completed.append((report.report_id, status))

    async def aclose(self) -> None:
        self.closed = True

    @property
    def uploaded_suites(self) -> list[str]:
        return [suite for _, suite, _ in self.uploads]


@pytest.fixture
def config() -> Config:
    return make_config()


@pytest.fixture
def report(config: Config) -> ReportModel:
    return ReportModel(
        organization=config.organization,
        base_url=config.base_url,
        digital_product=config.digital_product,
        environment=ExecutionEnvironment.DEV,
    )


@pytest.fixture
def mock_engine() -> MagicMock:
    engine = MagicMock()
    engine.start = AsyncMock()
    engine.stop = AsyncMock()
    engine.restart = AsyncMock()
    engine.goto = AsyncMock()
    engine.get_url = AsyncMock(return_value="https://app.example.com/checkout")
    engine.wait_for_selector = AsyncMock()
    element = MagicMock()
    element.click = AsyncMock()
    engine.find_by_xpath = AsyncMock(return_value=[element])
    engine.click = AsyncMock()
    engine.type = AsyncMock()
    engine.text_content = AsyncMock(return_value="  Order placed  ")
    engine.wait_for_network_idle = AsyncMock()
    engine.pause = AsyncMock()
    engine.screenshot = AsyncMock(return_value=b"png_data")
    engine.press_key = AsyncMock()
    engine.keyboard_type = AsyncMock()
    engine.emulate = AsyncMock()
    engine.force_state = AsyncMock()
    return engine


@pytest.fixture
def report_client() -> FakeReportClient:
    return FakeReportClient()
