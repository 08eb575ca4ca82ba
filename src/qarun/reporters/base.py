"""BaseReportClient ABC — report collaborator interface.

HttpReportClient (reporting API) and FileReportClient (Markdown + JSON on
disk) implement this. Report clients also act as the screenshot diff source.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from qarun.core.models import DiffResult, ReportModel, ReportStatus, StepRecord


class BaseReportClient(ABC):
    """Report collaborator abstract interface."""

    @abstractmethod
    async def create_empty_report(self, report: ReportModel) -> str:
        """Create a new report record upstream and return its id."""
        ...

    @abstractmethod
    async def compare_screenshots(self, key: str, screenshot: bytes) -> DiffResult:
        """Diff screenshot against the baseline stored under key."""
        ...

    @abstractmethod
    async def upload_suite(
        self,
        report: ReportModel,
        suite: str,
        records: list[StepRecord],
    ) -> None:
        """Attach one finished suite's step records to the report."""
        ...

    @abstractmethod
    async def complete_report(self, report: ReportModel, status: ReportStatus) -> None:
        """Mark the report finished with a terminal status."""
        ...

    async def aclose(self) -> None:
        """Release client resources."""
        return None
