"""qarun run — run or resume the suite queue once."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer

from qarun.core.budget import Deadline
from qarun.core.config import load_config
from qarun.core.exceptions import QARunError
from qarun.core.models import InvocationRequest, InvocationResponse, StepStatus
from qarun.core.suites import load_registry
from qarun.reporters import create_report_client
from qarun.runner import UNAUTHORIZED, Runner

_STATUS_COLORS = {
    StepStatus.PASSED: typer.colors.GREEN,
    StepStatus.FAILED: typer.colors.RED,
    StepStatus.SUGGESTION: typer.colors.CYAN,
    StepStatus.PERFORMANCE_FAIL: typer.colors.YELLOW,
}


def run_command(
    config_path: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
    report_id: str | None = typer.Option(
        None, "--report-id", "-r", help="Continue this report instead of creating one."
    ),
    next_suites: str | None = typer.Option(
        None, "--next-suites", "-n", help="Comma-separated suites still to run."
    ),
    suite: str | None = typer.Option(
        None, "--suite", "-s", help="Run only this suite against a fresh report."
    ),
    token: str | None = typer.Option(None, "--token", "-t", help="Invocation token."),
    budget_seconds: float | None = typer.Option(
        None, "--budget", "-b", help="Suspend between suites after this many seconds."
    ),
    suites_module: str | None = typer.Option(
        None, "--suites-module", "-m", help="Module defining `registry`."
    ),
    prior_failure: bool = typer.Option(
        False, "--failed", help="The report being continued already has a failed step."
    ),
) -> None:
    """Run test suites, printing the resumption checkpoint."""
    request = InvocationRequest(
        report_id=report_id,
        token=token,
        failed=prior_failure,
        next_suites=[s.strip() for s in next_suites.split(",") if s.strip()]
        if next_suites is not None
        else None,
    )
    try:
        response, failed = asyncio.run(
            _run(config_path, request, suite, budget_seconds, suites_module)
        )
    except QARunError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1) from None

    typer.echo(json.dumps(response.to_dict()))
    if response.status_code == UNAUTHORIZED or failed:
        raise typer.Exit(code=1)


async def _run(
    config_path: str | None,
    request: InvocationRequest,
    suite: str | None,
    budget_seconds: float | None,
    suites_module: str | None,
) -> tuple[InvocationResponse, bool]:
    """Assemble the runner and execute one invocation."""
    config = load_config(config_path=Path(config_path) if config_path else None)
    registry = load_registry(suites_module or config.suites_module)
    report_client = create_report_client(config.report)
    runner = Runner(config, registry, report_client)

    deadline: Deadline | None = None
    if budget_seconds is not None:
        deadline = Deadline.after(budget_seconds)

    try:
        if suite is not None:
            response = await runner.run_single_suite(request, suite)
        else:
            response = await runner.handle(request, should_suspend=deadline)
    finally:
        await report_client.aclose()

    outcome = runner.last_outcome
    if outcome is None:
        return response, False

    for record in outcome.records:
        status_str = typer.style(record.status.value, fg=_STATUS_COLORS[record.status])
        typer.echo(f"  [{record.tag}] {record.keyword.value} {record.message}: {status_str}")
    failed = any(r.status == StepStatus.FAILED for r in outcome.records)
    typer.echo(
        f"\n{outcome.state.value}: ran {', '.join(outcome.executed_suites) or 'nothing'}; "
        f"{len(outcome.next_suites)} suite(s) remain"
    )
    return response, failed
