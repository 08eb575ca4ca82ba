"""qarun data models — Pydantic v2.

This module is a leaf: no internal project imports.
All Enum and Model definitions live here.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# ============================================================
# Enums
# ============================================================


class StepKeyword(StrEnum):
    """Gherkin keyword prefixed to a step in the report narrative."""

    GIVEN = "Given"
    THEN = "Then"
    AND = "And"


class StepStatus(StrEnum):
    """Logged step outcome."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    SUGGESTION = "SUGGESTION"
    PERFORMANCE_FAIL = "PERFORMANCE_FAIL"


class ExecutionEnvironment(StrEnum):
    """Where the runner executes. LIVE is token-gated, LOCAL skips visual diffs."""

    LOCAL = "LOCAL"
    DEV = "DEV"
    LIVE = "LIVE"


class SchedulerState(StrEnum):
    """SuiteScheduler lifecycle state."""

    IDLE = "idle"
    RUNNING = "running"
    SUSPENDED = "suspended"
    COMPLETED = "completed"


class SelectorState(StrEnum):
    """Element state awaited by wait_for_selector."""

    ATTACHED = "attached"
    DETACHED = "detached"
    VISIBLE = "visible"
    HIDDEN = "hidden"


class PseudoState(StrEnum):
    """CSS pseudo-classes that can be forced on an element."""

    HOVER = "hover"
    ACTIVE = "active"
    FOCUS = "focus"
    FOCUS_WITHIN = "focus-within"
    FOCUS_VISIBLE = "focus-visible"
    VISITED = "visited"


class ReportStatus(StrEnum):
    """Terminal report status uploaded when the suite queue is drained."""

    PASSED = "passed"
    FAILED = "failed"


# ============================================================
# Config Models
# ============================================================


class EngineConfig(BaseModel):
    """Browser engine configuration."""

    browser: str = Field(
        default="chromium",
        description="Browser: chromium | firefox | webkit",
    )
    headless: bool = Field(default=True)
    viewport_width: int = Field(default=1280, ge=320, le=3840)
    viewport_height: int = Field(default=720, ge=240, le=2160)


class ReportConfig(BaseModel):
    """Report collaborator configuration."""

    api_url: str = Field(default="", description="Reporting API base URL; empty = file reports")
    api_key: str = Field(default="", description="API key (env: QARUN_REPORT__API_KEY)")
    timeout_s: float = Field(default=30.0, gt=0.0)
    reports_dir: str = Field(default="reports")
    baselines_dir: str = Field(default="baselines")
    update_baselines: bool = Field(default=False)


class Config(BaseSettings):
    """Project configuration. Merged from config file + env var + overrides."""

    model_config = SettingsConfigDict(
        env_prefix="QARUN_",
        env_nested_delimiter="__",
    )

    organization: str = Field(..., min_length=1)
    base_url: str = Field(..., min_length=1)
    digital_product: str = Field(..., min_length=1)
    environment: ExecutionEnvironment = Field(default=ExecutionEnvironment.LOCAL)
    token: str = Field(default="", description="Invocation token required in LIVE mode")
    suites: list[str] = Field(default_factory=list, description="Ordered suite names")
    suites_module: str = Field(default="suites.py", description="Module or .py file registering suites")
    timeout_ms: int = Field(default=30000, ge=0, le=600000)
    diff_threshold: float = Field(default=0.1, ge=0.0, le=100.0)
    suspend_reserve_ms: int = Field(default=60000, ge=0)
    otp_secret: str = Field(default="")
    engine: EngineConfig = Field(default_factory=EngineConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)


# ============================================================
# Step / Report Models
# ============================================================


class StepRecord(BaseModel):
    """One logged, human-readable outcome of an action or check."""

    model_config = ConfigDict(frozen=True, ser_json_bytes="base64")

    keyword: StepKeyword
    tag: str = ""
    message: str
    status: StepStatus
    screenshot: bytes | None = None
    diff_key: str | None = None
    timestamp: datetime = Field(default_factory=datetime.now)


class DiffResult(BaseModel):
    """Outcome of one screenshot comparison. None percent = no baseline."""

    key: str
    present_difference_percent: float | None = None


class ReportModel(BaseModel):
    """Report identity plus the resumption checkpoint."""

    organization: str
    base_url: str
    digital_product: str
    environment: ExecutionEnvironment = ExecutionEnvironment.LOCAL
    report_id: str | None = None
    next_suites: list[str] = Field(default_factory=list)
    failed: bool = Field(default=False, description="A FAILED step was logged by any invocation")


class RunOutcome(BaseModel):
    """What the scheduler hands back after one invocation."""

    state: SchedulerState
    report_id: str
    next_suites: list[str] = Field(default_factory=list)
    failed: bool = False
    executed_suites: list[str] = Field(default_factory=list)
    records: list[StepRecord] = Field(default_factory=list)

    @property
    def resumable(self) -> bool:
        return self.state == SchedulerState.SUSPENDED and bool(self.next_suites)


# ============================================================
# Invocation Models
# ============================================================


class InvocationRequest(BaseModel):
    """Query parameters of one invocation. No report_id = start a new report."""

    model_config = ConfigDict(populate_by_name=True)

    report_id: str | None = Field(default=None, alias="reportId")
    token: str | None = Field(default=None)
    next_suites: list[str] | None = Field(default=None, alias="nextSuites")
    failed: bool = Field(default=False, description="Carried over from the previous invocation")


class InvocationResponse(BaseModel):
    """Invocation result: 204 accepted, 401 unauthorized."""

    model_config = ConfigDict(populate_by_name=True)

    status_code: int = Field(..., alias="statusCode")
    message: str | None = None
    report_id: str | None = Field(default=None, alias="reportId")
    next_suites: list[str] | None = Field(default=None, alias="nextSuites")
    failed: bool | None = None

    def to_dict(self) -> dict[str, object]:
        return self.model_dump(by_alias=True, exclude_none=True)
