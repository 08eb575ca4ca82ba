"""Tests for SuiteScheduler — suite queue, suspension and resumption."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from conftest import FakeReportClient, make_config

from qarun.core.exceptions import ActionFailure, SuiteError
from qarun.core.models import (
    ExecutionEnvironment,
    ReportModel,
    ReportStatus,
    SchedulerState,
    StepKeyword,
    StepStatus,
)
from qarun.core.scheduler import SuiteScheduler
from qarun.core.suites import RunContext, SuiteRegistry


def _registry(*names: str) -> SuiteRegistry:
    """Registry where each suite logs one PASSED step named after itself."""
    registry = SuiteRegistry()
    for name in names:

        async def step(ctx: RunContext, name: str = name) -> None:
            ctx.log.record(StepKeyword.THEN, f"{name} ran", StepStatus.PASSED)

        registry.suite(name).add(f"{name} scenario", step)
    return registry


def _report(report_id: str | None = None) -> ReportModel:
    return ReportModel(
        organization="acme",
        base_url="https://app.example.com",
        digital_product="storefront",
        environment=ExecutionEnvironment.DEV,
        report_id=report_id,
    )


class TestSchedulerDrain:
    @pytest.mark.asyncio
    async def test_runs_all_suites_and_completes(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        scheduler = SuiteScheduler(
            make_config(), _registry("a", "b", "c"), mock_engine, report_client
        )
        report = _report()
        outcome = await scheduler.run(report, ["a", "b", "c"])

        assert outcome.state == SchedulerState.COMPLETED
        assert scheduler.state == SchedulerState.COMPLETED
        assert outcome.next_suites == []
        assert outcome.executed_suites == ["a", "b", "c"]
        assert report_client.uploaded_suites == ["a", "b", "c"]
        assert report_client.completed == [(outcome.report_id, ReportStatus.PASSED)]
        mock_engine.start.assert_awaited_once()
        mock_engine.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_creates_report_when_id_missing(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        scheduler = SuiteScheduler(make_config(), _registry("a"), mock_engine, report_client)
        report = _report()
        outcome = await scheduler.run(report, ["a"])
        assert report_client.created == [outcome.report_id]
        assert report.report_id == outcome.report_id

    @pytest.mark.asyncio
    async def test_existing_report_id_is_reused(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        scheduler = SuiteScheduler(make_config(), _registry("a"), mock_engine, report_client)
        outcome = await scheduler.run(_report("rep-existing"), ["a"])
        assert report_client.created == []
        assert outcome.report_id == "rep-existing"

    @pytest.mark.asyncio
    async def test_each_upload_holds_only_its_suite(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        scheduler = SuiteScheduler(
            make_config(), _registry("a", "b"), mock_engine, report_client
        )
        await scheduler.run(_report(), ["a", "b"])
        messages = [[r.message for r in records] for _, _, records in report_client.uploads]
        assert messages == [["a ran"], ["b ran"]]

    @pytest.mark.asyncio
    async def test_empty_queue_completes_immediately(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        scheduler = SuiteScheduler(make_config(), _registry(), mock_engine, report_client)
        outcome = await scheduler.run(_report(), [])
        assert outcome.state == SchedulerState.COMPLETED
        assert report_client.uploads == []
        assert len(report_client.completed) == 1

    @pytest.mark.asyncio
    async def test_unknown_suite_rejected_before_any_work(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        scheduler = SuiteScheduler(make_config(), _registry("a"), mock_engine, report_client)
        with pytest.raises(SuiteError):
            await scheduler.run(_report(), ["a", "nope"])
        assert report_client.created == []
        mock_engine.start.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_skip_engine_lifecycle(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        scheduler = SuiteScheduler(make_config(), _registry("a"), mock_engine, report_client)
        await scheduler.run(_report(), ["a"], skip_engine_lifecycle=True)
        mock_engine.start.assert_not_awaited()
        mock_engine.stop.assert_not_awaited()


class TestSchedulerSuspension:
    @pytest.mark.asyncio
    async def test_suspends_between_suites(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        scheduler = SuiteScheduler(
            make_config(),
            _registry("a", "b", "c"),
            mock_engine,
            report_client,
            should_suspend=lambda: True,
        )
        outcome = await scheduler.run(_report(), ["a", "b", "c"])

        assert outcome.state == SchedulerState.SUSPENDED
        assert outcome.resumable is True
        assert outcome.executed_suites == ["a"]
        assert outcome.next_suites == ["b", "c"]
        assert report_client.completed == []
        mock_engine.stop.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_last_suite_never_suspends(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        scheduler = SuiteScheduler(
            make_config(),
            _registry("a"),
            mock_engine,
            report_client,
            should_suspend=lambda: True,
        )
        outcome = await scheduler.run(_report(), ["a"])
        assert outcome.state == SchedulerState.COMPLETED

    @pytest.mark.asyncio
    async def test_resume_completes_same_report(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        registry = _registry("a", "b", "c")
        first = SuiteScheduler(
            make_config(), registry, mock_engine, report_client, should_suspend=lambda: True
        )
        suspended = await first.run(_report(), ["a", "b", "c"])

        second = SuiteScheduler(make_config(), registry, mock_engine, report_client)
        resumed = await second.run(_report(suspended.report_id), suspended.next_suites)

        assert resumed.state == SchedulerState.COMPLETED
        assert resumed.report_id == suspended.report_id
        assert report_client.uploaded_suites == ["a", "b", "c"]
        assert len(report_client.created) == 1
        assert report_client.completed == [(suspended.report_id, ReportStatus.PASSED)]

    @pytest.mark.asyncio
    async def test_failure_before_suspension_fails_resumed_report(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        registry = _registry("b")

        @registry.suite("a").scenario("wrong page")
        async def wrong_page(ctx: RunContext) -> None:
            await ctx.actions.url_contains("nowhere")

        first = SuiteScheduler(
            make_config(), registry, mock_engine, report_client, should_suspend=lambda: True
        )
        suspended = await first.run(_report(), ["a", "b"])
        assert suspended.state == SchedulerState.SUSPENDED
        assert suspended.failed is True

        resumed_report = _report(suspended.report_id)
        resumed_report.failed = suspended.failed
        second = SuiteScheduler(make_config(), registry, mock_engine, report_client)
        resumed = await second.run(resumed_report, suspended.next_suites)

        assert [r.status for r in resumed.records] == [StepStatus.PASSED]
        assert resumed.failed is True
        assert report_client.completed == [(suspended.report_id, ReportStatus.FAILED)]

    @pytest.mark.asyncio
    async def test_passing_run_reports_not_failed(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        scheduler = SuiteScheduler(
            make_config(), _registry("a", "b"), mock_engine, report_client,
            should_suspend=lambda: True,
        )
        outcome = await scheduler.run(_report(), ["a", "b"])
        assert outcome.failed is False

    @pytest.mark.asyncio
    async def test_suspend_checked_after_each_suite(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        answers = iter([False, True])
        scheduler = SuiteScheduler(
            make_config(),
            _registry("a", "b", "c"),
            mock_engine,
            report_client,
            should_suspend=lambda: next(answers),
        )
        outcome = await scheduler.run(_report(), ["a", "b", "c"])
        assert outcome.executed_suites == ["a", "b"]
        assert outcome.next_suites == ["c"]


class TestSchedulerFailures:
    @pytest.mark.asyncio
    async def test_action_failure_aborts_only_its_scenario(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        registry = SuiteRegistry()
        suite = registry.suite("checkout")
        ran: list[str] = []

        @suite.scenario("broken")
        async def broken(ctx: RunContext) -> None:
            ctx.log.record(StepKeyword.THEN, "I click on the '#buy'", StepStatus.FAILED)
            raise ActionFailure("I click on the '#buy'")

        @suite.scenario("healthy")
        async def healthy(ctx: RunContext) -> None:
            ran.append("healthy")
            ctx.log.record(StepKeyword.THEN, "ok", StepStatus.PASSED)

        outcome = await SuiteScheduler(
            make_config(), registry, mock_engine, report_client
        ).run(_report(), ["checkout"])

        assert ran == ["healthy"]
        assert [r.tag for r in outcome.records] == ["broken", "healthy"]
        assert report_client.completed[0][1] == ReportStatus.FAILED

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_logged_as_failed(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        registry = SuiteRegistry()

        @registry.suite("search").scenario("crashes")
        async def crashes(ctx: RunContext) -> None:
            raise KeyError("missing")

        outcome = await SuiteScheduler(
            make_config(), registry, mock_engine, report_client
        ).run(_report(), ["search"])

        [record] = outcome.records
        assert record.status == StepStatus.FAILED
        assert record.tag == "crashes"
        assert record.message.startswith("Scenario 'crashes' stopped: KeyError")

    @pytest.mark.asyncio
    async def test_tag_cleared_after_scenario(
        self, mock_engine: MagicMock, report_client: FakeReportClient
    ) -> None:
        scheduler = SuiteScheduler(make_config(), _registry("a"), mock_engine, report_client)
        await scheduler.run(_report(), ["a"])
        assert scheduler.log.tag == ""

    @pytest.mark.asyncio
    async def test_engine_stopped_when_upload_fails(
        self, mock_engine: MagicMock
    ) -> None:
        class BrokenClient(FakeReportClient):
            async def upload_suite(self, report, suite, records):  # type: ignore[override]
                raise RuntimeError("network down")

        scheduler = SuiteScheduler(make_config(), _registry("a"), mock_engine, BrokenClient())
        with pytest.raises(RuntimeError):
            await scheduler.run(_report(), ["a"])
        mock_engine.stop.assert_awaited_once()


class TestSchedulerContext:
    @pytest.mark.asyncio
    async def test_scenarios_get_working_actions(
        self, mock_engine: MagicMock
    ) -> None:
        client = FakeReportClient(diffs={"home": 4.2})
        registry = SuiteRegistry()

        @registry.suite("visual").scenario("home page")
        async def home(ctx: RunContext) -> None:
            await ctx.actions.goto(ctx.config.base_url)
            await ctx.actions.screenshot_compare("home")

        outcome = await SuiteScheduler(
            make_config(diff_threshold=1.0), registry, mock_engine, client
        ).run(_report(), ["visual"])

        assert [r.status for r in outcome.records] == [StepStatus.PASSED, StepStatus.FAILED]
        assert client.compared == ["home"]
        mock_engine.goto.assert_awaited_once_with("https://app.example.com", 5000)
