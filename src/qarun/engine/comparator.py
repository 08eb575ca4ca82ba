"""ScreenshotComparator — visual-regression pass/fail decision.

Asks a diff source (report API or local baselines) for the percentage
difference between a screenshot and its stored baseline, and logs the
verdict with the screenshot attached as evidence.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from qarun.core.models import ExecutionEnvironment, StepKeyword, StepStatus

if TYPE_CHECKING:
    from qarun.core.models import DiffResult, StepRecord
    from qarun.core.step_log import StepLog

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.1


class DiffSource(Protocol):
    """Anything that can diff a screenshot against the baseline stored under key."""

    async def compare_screenshots(self, key: str, screenshot: bytes) -> DiffResult: ...


class ScreenshotComparator:
    """Decide visual-regression checks against a difference threshold.

    In the LOCAL environment no comparison is made and every check passes.
    A missing baseline (no percentage) also passes.
    """

    def __init__(
        self,
        log: StepLog,
        diff_source: DiffSource,
        environment: ExecutionEnvironment = ExecutionEnvironment.LOCAL,
        default_threshold: float = DEFAULT_THRESHOLD,
    ) -> None:
        self._log = log
        self._diff_source = diff_source
        self._environment = environment
        self._default_threshold = default_threshold

    async def compare(
        self,
        key: str,
        screenshot: bytes,
        threshold: float | None = None,
    ) -> StepRecord:
        """Compare screenshot with the baseline for key and log the verdict.

        Args:
            key: Baseline identifier.
            screenshot: Current screenshot PNG bytes.
            threshold: Maximum tolerated difference percent (default from config).

        Returns:
            The appended StepRecord.
        """
        if threshold is None:
            threshold = self._default_threshold
        passed_message = f"The '{key}' screenshot matches the baseline"

        if self._environment == ExecutionEnvironment.LOCAL:
            return self._record(passed_message, StepStatus.PASSED, screenshot, key)

        result = await self._diff_source.compare_screenshots(key, screenshot)
        percent = result.present_difference_percent
        if percent is None:
            logger.info("No baseline for '%s'; screenshot check passes", key)
            return self._record(passed_message, StepStatus.PASSED, screenshot, key)

        if percent > threshold:
            message = f"The '{key}' screenshot differs from the baseline by {percent}%"
            return self._record(message, StepStatus.FAILED, screenshot, key)
        return self._record(passed_message, StepStatus.PASSED, screenshot, key)

    def _record(
        self, message: str, status: StepStatus, screenshot: bytes, key: str
    ) -> StepRecord:
        return self._log.record(StepKeyword.THEN, message, status, screenshot, key)
