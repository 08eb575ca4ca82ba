"""Report client registry."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from qarun.engine.baseline import BaselineDiffer
from qarun.reporters.base import BaseReportClient
from qarun.reporters.http import HttpReportClient
from qarun.reporters.markdown import FileReportClient

if TYPE_CHECKING:
    from qarun.core.models import ReportConfig


def create_report_client(config: ReportConfig) -> BaseReportClient:
    """HttpReportClient when an API URL is configured, else FileReportClient."""
    if config.api_url:
        return HttpReportClient(config)
    differ = BaselineDiffer(
        Path(config.baselines_dir),
        update_baselines=config.update_baselines,
    )
    return FileReportClient(Path(config.reports_dir), differ)


__all__ = [
    "BaseReportClient",
    "FileReportClient",
    "HttpReportClient",
    "create_report_client",
]
