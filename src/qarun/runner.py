"""Runner — invocation driver in front of the SuiteScheduler.

Applies per-invocation overrides, enforces the LIVE-mode token gate,
picks the report identity (new or continuing) and the suite queue, and
turns the scheduler outcome into an invocation response.
"""

from __future__ import annotations

import hmac
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from qarun.core.config import normalize_keys
from qarun.core.exceptions import AuthorizationError
from qarun.core.models import (
    ExecutionEnvironment,
    InvocationRequest,
    InvocationResponse,
    ReportModel,
    RunOutcome,
)
from qarun.core.scheduler import SuiteScheduler
from qarun.engine.web import WebEngine

if TYPE_CHECKING:
    from qarun.core.models import Config
    from qarun.core.suites import SuiteRegistry
    from qarun.engine.base import BaseEngine
    from qarun.reporters.base import BaseReportClient

logger = logging.getLogger(__name__)

ACCEPTED = 204
UNAUTHORIZED = 401

# Override keys that also change the report identity
_REPORT_OVERRIDES = ("digital_product", "environment", "base_url")


class Runner:
    """Entry point for one invocation of a (possibly resumed) test run."""

    def __init__(
        self,
        config: Config,
        registry: SuiteRegistry,
        report_client: BaseReportClient,
        engine_factory: Callable[[Config], BaseEngine] | None = None,
    ) -> None:
        self._config = config
        self._registry = registry
        self._report_client = report_client
        self._engine_factory = engine_factory or (lambda cfg: WebEngine(cfg.engine))
        self._report = ReportModel(
            organization=config.organization,
            base_url=config.base_url,
            digital_product=config.digital_product,
            environment=config.environment,
        )
        self.last_outcome: RunOutcome | None = None

    @property
    def config(self) -> Config:
        return self._config

    @property
    def report(self) -> ReportModel:
        return self._report

    def apply_overrides(self, overrides: dict[str, Any] | None) -> None:
        """Override config fields for this invocation; report fields follow along."""
        if not overrides:
            return
        overrides = normalize_keys(overrides)
        self._config = self._config.model_copy(update=overrides)
        # model_copy skips validation
        self._config.environment = ExecutionEnvironment(self._config.environment)
        for key in _REPORT_OVERRIDES:
            if overrides.get(key):
                setattr(self._report, key, getattr(self._config, key))

    def authorize(self, request: InvocationRequest) -> None:
        """Raise AuthorizationError when LIVE mode and the token does not match."""
        if self._config.environment != ExecutionEnvironment.LIVE:
            return
        token = request.token or ""
        expected = self._config.token
        if not expected or not hmac.compare_digest(token.encode(), expected.encode()):
            msg = "Unauthorized"
            raise AuthorizationError(msg)

    async def handle(
        self,
        request: InvocationRequest,
        *,
        overrides: dict[str, Any] | None = None,
        should_suspend: Callable[[], bool] | None = None,
    ) -> InvocationResponse:
        """Run (or resume) the configured suite queue.

        A request without report_id starts a new report over Config.suites.
        A request with report_id continues it over request.next_suites.
        """
        self.apply_overrides(overrides)
        try:
            self.authorize(request)
        except AuthorizationError as exc:
            logger.warning("Rejected invocation: %s", exc)
            return InvocationResponse(status_code=UNAUTHORIZED, message=str(exc))

        self._report.report_id = request.report_id
        # Failures of earlier invocations only count when continuing a report
        self._report.failed = request.report_id is not None and request.failed
        if request.next_suites is not None:
            suites = list(request.next_suites)
        else:
            suites = list(self._config.suites)

        outcome = await self._scheduler(should_suspend).run(self._report, suites)
        return self._respond(outcome)

    async def run_single_suite(
        self,
        request: InvocationRequest,
        suite: str,
        *,
        overrides: dict[str, Any] | None = None,
    ) -> InvocationResponse:
        """Run one suite against a fresh report, with nothing queued after it."""
        self.apply_overrides(overrides)
        try:
            self.authorize(request)
        except AuthorizationError as exc:
            logger.warning("Rejected invocation: %s", exc)
            return InvocationResponse(status_code=UNAUTHORIZED, message=str(exc))

        self._report.report_id = None
        self._report.failed = False
        self._report.next_suites = []
        outcome = await self._scheduler(None).run(self._report, [suite])
        return self._respond(outcome)

    def _scheduler(self, should_suspend: Callable[[], bool] | None) -> SuiteScheduler:
        return SuiteScheduler(
            self._config,
            self._registry,
            self._engine_factory(self._config),
            self._report_client,
            should_suspend=should_suspend,
        )

    def _respond(self, outcome: RunOutcome) -> InvocationResponse:
        self.last_outcome = outcome
        return InvocationResponse(
            status_code=ACCEPTED,
            report_id=outcome.report_id,
            next_suites=outcome.next_suites,
            failed=outcome.failed,
        )
