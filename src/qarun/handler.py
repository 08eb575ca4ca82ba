"""Serverless entry point.

    from qarun.handler import handler  # configured as the function handler

The event carries queryStringParameters (reportId, token, nextSuites, failed);
the platform context's get_remaining_time_in_millis() drives suspension.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from qarun.core.budget import Deadline
from qarun.core.config import load_config
from qarun.core.models import Config, InvocationRequest
from qarun.core.suites import load_registry
from qarun.reporters import create_report_client
from qarun.runner import Runner

logger = logging.getLogger(__name__)


def parse_request(event: dict[str, Any] | None) -> InvocationRequest:
    """Build an InvocationRequest from an event's query string parameters."""
    params = (event or {}).get("queryStringParameters") or {}
    next_suites = params.get("nextSuites")
    if isinstance(next_suites, str):
        next_suites = [s.strip() for s in next_suites.split(",") if s.strip()]
    return InvocationRequest(
        report_id=params.get("reportId") or None,
        token=params.get("token"),
        next_suites=next_suites,
        failed=params.get("failed") or False,
    )


def deadline_from_context(context: Any, config: Config) -> Deadline | None:
    """Deadline from a platform context, or None when it exposes no clock."""
    remaining = getattr(context, "get_remaining_time_in_millis", None)
    if remaining is None:
        return None
    return Deadline(remaining, reserve_ms=config.suspend_reserve_ms)


async def handle_event(
    event: dict[str, Any] | None,
    context: Any = None,
    *,
    runner: Runner | None = None,
    overrides: dict[str, Any] | None = None,
) -> dict[str, object]:
    """Async body of handler(); accepts a prebuilt Runner for embedding."""
    request = parse_request(event)
    if runner is not None:
        deadline = deadline_from_context(context, runner.config)
        response = await runner.handle(request, overrides=overrides, should_suspend=deadline)
        return response.to_dict()

    config = load_config()
    report_client = create_report_client(config.report)
    try:
        runner = Runner(config, load_registry(config.suites_module), report_client)
        deadline = deadline_from_context(context, config)
        response = await runner.handle(request, overrides=overrides, should_suspend=deadline)
    finally:
        await report_client.aclose()
    return response.to_dict()


def handler(event: dict[str, Any] | None, context: Any = None) -> dict[str, object]:
    """Synchronous function-as-a-service handler."""
    return asyncio.run(handle_event(event, context))
