"""ActionExecutor — browser primitives wrapped as logged steps.

Every action builds its human-readable message up front, runs the engine
primitive under a timeout, then logs PASSED, or logs FAILED and raises
ActionFailure with the very same text.
All dependencies are injected via constructor for testability.
"""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, NoReturn, TypeVar

from qarun.core.exceptions import ActionFailure, ElementNotFoundError, EngineTimeoutError
from qarun.core.models import PseudoState, SelectorState, StepKeyword, StepStatus
from qarun.engine.devices import resolve_device

if TYPE_CHECKING:
    from qarun.core.models import StepRecord
    from qarun.core.step_log import StepLog
    from qarun.engine.base import BaseEngine
    from qarun.engine.comparator import ScreenshotComparator
    from qarun.engine.devices import DeviceProfile

T = TypeVar("T")

DEFAULT_TIMEOUT_MS = 30000


def escape_xpath_text(text: str) -> str:
    """Build an XPath string expression equal to text.

    XPath literals cannot escape quotes, so the text is split on single
    quotes and rejoined with concat(), inserting each quote as "'".

        O'Brien  ->  concat('O', "'", 'Brien', '')
    """
    segments = text.split("'")
    return "concat('" + "', \"'\", '".join(segments) + "', '')"


def text_match_xpath(selector: str, text: str) -> str:
    """XPath for elements named selector whose full text equals text."""
    return f"//{selector}[. = {escape_xpath_text(text)}]"


def _timeout_suffix(timeout_ms: int) -> str:
    return f" (timed out after {timeout_ms / 1000:g}s)"


class ActionExecutor:
    """Execute browser actions and narrate them into a StepLog."""

    def __init__(
        self,
        engine: BaseEngine,
        log: StepLog,
        comparator: ScreenshotComparator | None = None,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> None:
        self._engine = engine
        self._log = log
        self._comparator = comparator
        self.default_timeout_ms = default_timeout_ms

    @property
    def engine(self) -> BaseEngine:
        return self._engine

    # ------------------------------------------------------------------
    # Step protocol
    # ------------------------------------------------------------------

    async def _attempt(
        self,
        keyword: StepKeyword,
        message: str,
        operation: Callable[[], Awaitable[T]],
        *,
        log_message: bool = True,
        log_passed: bool = True,
    ) -> T:
        """Run operation; log PASSED on success, FAILED + ActionFailure otherwise.

        log_passed=False leaves the success record to the operation itself.
        """
        try:
            result = await operation()
        except ActionFailure:
            raise
        except EngineTimeoutError as e:
            self._fail(keyword, message + _timeout_suffix(e.timeout_ms), log_message, e)
        except Exception as e:  # noqa: BLE001
            self._fail(keyword, message, log_message, e)
        if log_message and log_passed:
            self._log.record(keyword, message, StepStatus.PASSED)
        return result

    def _fail(
        self,
        keyword: StepKeyword,
        message: str,
        log_message: bool,
        cause: Exception | None = None,
    ) -> NoReturn:
        if log_message:
            self._log.record(keyword, message, StepStatus.FAILED)
        raise ActionFailure(message) from cause

    def _timeout(self, timeout_ms: int | None) -> int:
        return self.default_timeout_ms if timeout_ms is None else timeout_ms

    # ------------------------------------------------------------------
    # Narrative helpers
    # ------------------------------------------------------------------

    def log(self, keyword: StepKeyword, message: str, status: StepStatus) -> StepRecord:
        """Append a free-form step under the current tag."""
        return self._log.record(keyword, message, status)

    def suggest(self, name: str) -> StepRecord:
        return self._log.add_suggestion(name)

    def performance_fail(self, name: str, screenshot: bytes | None = None) -> StepRecord:
        return self._log.add_performance_fail(name, screenshot)

    # ------------------------------------------------------------------
    # Logged actions
    # ------------------------------------------------------------------

    async def goto(
        self,
        url: str,
        *,
        timeout_ms: int | None = None,
        max_load_ms: int | None = None,
    ) -> None:
        """Navigate to url. Adds a performance warning if loading exceeds max_load_ms."""
        message = f"I go to the '{url}' page"
        timeout = self._timeout(timeout_ms)
        start = time.monotonic()
        await self._attempt(StepKeyword.THEN, message, lambda: self._engine.goto(url, timeout))
        elapsed_ms = (time.monotonic() - start) * 1000
        if max_load_ms is not None and elapsed_ms > max_load_ms:
            screenshot = await self._engine.screenshot()
            self._log.add_performance_fail(
                f"The '{url}' page loaded in {elapsed_ms:.0f}ms "
                f"(limit {max_load_ms}ms)",
                screenshot,
            )

    async def click(self, selector: str, *, timeout_ms: int | None = None) -> None:
        message = f"I click on the '{selector}'"
        timeout = self._timeout(timeout_ms)

        async def operation() -> None:
            await self._engine.wait_for_selector(selector, SelectorState.VISIBLE, timeout)
            await self._engine.click(selector, timeout)

        await self._attempt(StepKeyword.THEN, message, operation)

    async def click_by_text(
        self, selector: str, text: str, *, timeout_ms: int | None = None
    ) -> None:
        """Click the first selector element whose text is exactly text."""
        message = f"I click on the '{text}' '{selector}'"
        timeout = self._timeout(timeout_ms)

        async def operation() -> None:
            elements = await self._find_with_text(selector, text, timeout)
            await elements[0].click()

        await self._attempt(StepKeyword.THEN, message, operation)

    async def type(
        self, field: str, value: str, *, timeout_ms: int | None = None
    ) -> None:
        message = f"I type '{value}' into the '{field}' field"
        timeout = self._timeout(timeout_ms)

        async def operation() -> None:
            await self._engine.wait_for_selector(field, SelectorState.VISIBLE, timeout)
            await self._engine.type(field, value, timeout)

        await self._attempt(StepKeyword.THEN, message, operation)

    async def wait_for_network_idle(
        self, *, timeout_ms: int | None = None, log_message: bool = True
    ) -> None:
        message = "I wait for the page to load"
        timeout = self._timeout(timeout_ms)
        await self._attempt(
            StepKeyword.THEN,
            message,
            lambda: self._engine.wait_for_network_idle(timeout),
            log_message=log_message,
        )

    async def wait_for_selector(
        self,
        selector: str,
        state: SelectorState | str = SelectorState.VISIBLE,
        *,
        timeout_ms: int | None = None,
        log_message: bool = True,
    ) -> None:
        state = SelectorState(state)
        message = f"I check for the '{selector}' element to be {state.value}"
        timeout = self._timeout(timeout_ms)
        await self._attempt(
            StepKeyword.AND,
            message,
            lambda: self._engine.wait_for_selector(selector, state, timeout),
            log_message=log_message,
        )

    async def wait_for_text(
        self,
        selector: str,
        text: str,
        *,
        timeout_ms: int | None = None,
        log_message: bool = True,
    ) -> bool:
        """Check that a selector element with exactly text is on the page."""
        message = f"I check for '{text}' on the current page"
        timeout = self._timeout(timeout_ms)

        async def operation() -> bool:
            await self._find_with_text(selector, text, timeout)
            return True

        return await self._attempt(
            StepKeyword.AND, message, operation, log_message=log_message
        )

    async def get_text(self, selector: str, *, timeout_ms: int | None = None) -> str:
        """Return the text content of the element matching selector."""
        message = f"I read the text of the '{selector}' element"
        timeout = self._timeout(timeout_ms)

        async def operation() -> str:
            await self._engine.wait_for_selector(selector, SelectorState.ATTACHED, timeout)
            content = await self._engine.text_content(selector, timeout)
            return (content or "").strip()

        return await self._attempt(StepKeyword.AND, message, operation)

    async def url_contains(self, fragment: str) -> None:
        message = f"I am on the {fragment} page"

        async def operation() -> None:
            url = await self._engine.get_url()
            if fragment not in url:
                msg = f"URL {url} does not contain '{fragment}'"
                raise ElementNotFoundError(msg)

        await self._attempt(StepKeyword.AND, message, operation)

    async def screenshot_compare(
        self, key: str, threshold: float | None = None
    ) -> StepRecord:
        """Capture a screenshot and compare it against the baseline for key.

        The verdict is the comparator's own record. Only a failed capture or
        diff-source call is logged here, as FAILED with the action's message.
        """
        message = f"I compare the '{key}' screenshot"
        comparator = self._comparator
        if comparator is None:
            self._fail(StepKeyword.THEN, f"{message} (no comparator configured)", True)

        async def operation() -> StepRecord:
            screenshot = await self._engine.screenshot()
            return await comparator.compare(key, screenshot, threshold)

        return await self._attempt(StepKeyword.THEN, message, operation, log_passed=False)

    async def _find_with_text(self, selector: str, text: str, timeout_ms: int) -> list[Any]:
        await self._engine.wait_for_selector(selector, SelectorState.ATTACHED, timeout_ms)
        elements = await self._engine.find_by_xpath(text_match_xpath(selector, text))
        if not elements:
            msg = f"No '{selector}' element with text '{text}'"
            raise ElementNotFoundError(msg)
        return elements

    # ------------------------------------------------------------------
    # Side-channel actions (not part of the report narrative)
    # ------------------------------------------------------------------

    async def pause(self, ms: int | None = None) -> None:
        await self._engine.pause(self._timeout(ms))

    async def emulate(self, device: str | DeviceProfile) -> DeviceProfile:
        """Emulate a supported device. Raises DeviceProfileError for unknown names."""
        profile = resolve_device(device)
        await self._engine.emulate(profile)
        return profile

    async def force_state(self, selector: str, *states: PseudoState | str) -> None:
        await self._engine.force_state(selector, [PseudoState(s) for s in states])

    async def press_key(self, key: str) -> None:
        await self._engine.press_key(key)

    async def keyboard_type(self, text: str) -> None:
        await self._engine.keyboard_type(text)

    async def restart_browser(self) -> None:
        await self._engine.restart()
