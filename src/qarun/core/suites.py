"""Suite registry — named suites of named scenarios.

A scenario is an async callable taking a RunContext. Suites are looked up
by name so the resumption checkpoint stays a plain list of strings.

    registry = SuiteRegistry()
    login = registry.suite("login")

    @login.scenario("valid credentials")
    async def valid_credentials(ctx: RunContext) -> None:
        await ctx.actions.goto(ctx.config.base_url)
"""

from __future__ import annotations

import importlib
import importlib.util
from collections.abc import Awaitable, Callable
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING

from qarun.core.exceptions import SuiteError

if TYPE_CHECKING:
    from qarun.core.models import Config, ReportModel
    from qarun.core.step_log import StepLog
    from qarun.engine.base import BaseEngine
    from qarun.engine.comparator import ScreenshotComparator
    from qarun.engine.executor import ActionExecutor

ScenarioFn = Callable[["RunContext"], Awaitable[None]]


class RunContext:
    """Everything a scenario needs for one run: actions, log, config, report."""

    def __init__(
        self,
        config: Config,
        report: ReportModel,
        engine: BaseEngine,
        log: StepLog,
        actions: ActionExecutor,
        comparator: ScreenshotComparator,
    ) -> None:
        self.config = config
        self.report = report
        self.engine = engine
        self.log = log
        self.actions = actions
        self.comparator = comparator


class Scenario:
    """One test case: an ordered sequence of actions."""

    def __init__(self, name: str, fn: ScenarioFn) -> None:
        self.name = name
        self.fn = fn

    async def run(self, ctx: RunContext) -> None:
        await self.fn(ctx)

    def __repr__(self) -> str:
        return f"Scenario({self.name!r})"


class Suite:
    """Ordered collection of scenarios exercising one feature area."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.scenarios: list[Scenario] = []

    def scenario(self, name: str | None = None) -> Callable[[ScenarioFn], ScenarioFn]:
        """Decorator registering fn as the suite's next scenario."""

        def decorator(fn: ScenarioFn) -> ScenarioFn:
            self.add(name or fn.__name__, fn)
            return fn

        return decorator

    def add(self, name: str, fn: ScenarioFn) -> Scenario:
        if any(s.name == name for s in self.scenarios):
            msg = f"Duplicate scenario '{name}' in suite '{self.name}'"
            raise SuiteError(msg)
        scenario = Scenario(name, fn)
        self.scenarios.append(scenario)
        return scenario

    def __repr__(self) -> str:
        return f"Suite({self.name!r}, scenarios={len(self.scenarios)})"


class SuiteRegistry:
    """Name -> Suite mapping, in registration order."""

    def __init__(self) -> None:
        self._suites: dict[str, Suite] = {}

    def suite(self, name: str) -> Suite:
        """Return the suite registered under name, creating it if needed."""
        if name not in self._suites:
            self._suites[name] = Suite(name)
        return self._suites[name]

    def get(self, name: str) -> Suite:
        try:
            return self._suites[name]
        except KeyError:
            msg = f"Unknown suite '{name}'. Registered: {', '.join(self._suites) or 'none'}"
            raise SuiteError(msg) from None

    def names(self) -> list[str]:
        return list(self._suites)

    def validate(self, names: list[str]) -> None:
        """Raise SuiteError if any name is not registered."""
        for name in names:
            self.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._suites

    def __len__(self) -> int:
        return len(self._suites)


def load_registry(module_name: str) -> SuiteRegistry:
    """Import module_name and return its module-level `registry`.

    module_name is either a dotted module path or a path to a .py file.

    Raises:
        SuiteError: If the module cannot be imported or defines no registry.
    """
    try:
        if module_name.endswith(".py"):
            module = _load_file_module(Path(module_name))
        else:
            module = importlib.import_module(module_name)
    except (ImportError, OSError) as e:
        msg = f"Cannot import suites module '{module_name}': {e}"
        raise SuiteError(msg) from e
    registry = getattr(module, "registry", None)
    if not isinstance(registry, SuiteRegistry):
        msg = f"Suites module '{module_name}' has no SuiteRegistry named 'registry'"
        raise SuiteError(msg)
    return registry


def _load_file_module(path: Path) -> ModuleType:
    if not path.is_file():
        msg = f"No such file: {path}"
        raise ImportError(msg)
    spec = importlib.util.spec_from_file_location(f"qarun_suites_{path.stem}", path)
    if spec is None or spec.loader is None:
        msg = f"Cannot load {path}"
        raise ImportError(msg)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module
