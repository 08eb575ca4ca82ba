"""SuiteScheduler — resumable suite queue orchestrator."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from qarun.core.exceptions import ActionFailure
from qarun.core.models import (
    ReportStatus,
    RunOutcome,
    SchedulerState,
    StepKeyword,
    StepStatus,
)
from qarun.core.step_log import StepLog
from qarun.core.suites import RunContext
from qarun.engine.comparator import ScreenshotComparator
from qarun.engine.executor import ActionExecutor

if TYPE_CHECKING:
    from qarun.core.models import Config, ReportModel
    from qarun.core.suites import Scenario, Suite, SuiteRegistry
    from qarun.engine.base import BaseEngine
    from qarun.reporters.base import BaseReportClient

logger = logging.getLogger(__name__)


def _never_suspend() -> bool:
    return False


class SuiteScheduler:
    """Run an ordered queue of suites against one report identity.

    Suites are the unit of resumption: the checkpoint (report.report_id,
    report.next_suites, report.failed) only changes between suites. The
    terminal status reflects failures from every invocation of the report.
    After each suite the should_suspend callback is consulted; when it
    returns True the run stops and the remainder is handed back for the
    next invocation.

    A scenario's ActionFailure aborts that scenario only. Sibling scenarios
    and later suites still run.
    """

    def __init__(
        self,
        config: Config,
        registry: SuiteRegistry,
        engine: BaseEngine,
        report_client: BaseReportClient,
        should_suspend: Callable[[], bool] | None = None,
    ) -> None:
        self._config = config
        self._registry = registry
        self._engine = engine
        self._report_client = report_client
        self._should_suspend = should_suspend or _never_suspend
        self._state = SchedulerState.IDLE
        self._log = StepLog()

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def log(self) -> StepLog:
        return self._log

    async def run(
        self,
        report: ReportModel,
        suites: list[str],
        *,
        skip_engine_lifecycle: bool = False,
    ) -> RunOutcome:
        """Drain suites in order until empty or told to suspend.

        Args:
            report: Report identity. A missing report_id is created first.
            suites: Suite names still to run, in order.
            skip_engine_lifecycle: If True, do not call engine.start()/stop().

        Returns:
            RunOutcome with the checkpoint for the next invocation.
        """
        self._registry.validate(suites)
        self._log = StepLog()

        if report.report_id is None:
            report.report_id = await self._report_client.create_empty_report(report)
        report.next_suites = list(suites)

        self._state = SchedulerState.RUNNING
        executed: list[str] = []
        ctx = self._build_context(report)

        try:
            if not skip_engine_lifecycle:
                await self._engine.start()

            while report.next_suites:
                name = report.next_suites[0]
                mark = self._log.mark()
                await self._run_suite(self._registry.get(name), ctx)

                suite_records = self._log.since(mark)
                report.failed = report.failed or any(
                    r.status == StepStatus.FAILED for r in suite_records
                )
                report.next_suites = report.next_suites[1:]
                executed.append(name)
                await self._report_client.upload_suite(report, name, suite_records)

                if report.next_suites and self._should_suspend():
                    self._state = SchedulerState.SUSPENDED
                    logger.info(
                        "Suspending report %s after '%s'; %d suite(s) remain",
                        report.report_id,
                        name,
                        len(report.next_suites),
                    )
                    break
            else:
                status = ReportStatus.FAILED if report.failed else ReportStatus.PASSED
                await self._report_client.complete_report(report, status)
                self._state = SchedulerState.COMPLETED
                logger.info("Report %s completed (%s)", report.report_id, status.value)
        finally:
            if not skip_engine_lifecycle:
                await self._engine.stop()

        return RunOutcome(
            state=self._state,
            report_id=report.report_id,
            next_suites=list(report.next_suites),
            failed=report.failed,
            executed_suites=executed,
            records=self._log.records,
        )

    def _build_context(self, report: ReportModel) -> RunContext:
        comparator = ScreenshotComparator(
            self._log,
            self._report_client,
            environment=report.environment,
            default_threshold=self._config.diff_threshold,
        )
        actions = ActionExecutor(
            self._engine,
            self._log,
            comparator,
            default_timeout_ms=self._config.timeout_ms,
        )
        return RunContext(
            config=self._config,
            report=report,
            engine=self._engine,
            log=self._log,
            actions=actions,
            comparator=comparator,
        )

    async def _run_suite(self, suite: Suite, ctx: RunContext) -> None:
        logger.info("Running suite '%s' (%d scenarios)", suite.name, len(suite.scenarios))
        for scenario in suite.scenarios:
            await self._run_scenario(scenario, ctx)

    async def _run_scenario(self, scenario: Scenario, ctx: RunContext) -> None:
        self._log.set_tag(scenario.name)
        try:
            await scenario.run(ctx)
        except ActionFailure as exc:
            # Already logged as a FAILED step by the executor
            logger.warning("Scenario '%s' aborted: %s", scenario.name, exc)
        except Exception as exc:
            logger.exception("Scenario '%s' raised", scenario.name)
            self._log.record(
                StepKeyword.THEN,
                f"Scenario '{scenario.name}' stopped: {type(exc).__name__}: {exc}",
                StepStatus.FAILED,
            )
        finally:
            self._log.clear_tag()
