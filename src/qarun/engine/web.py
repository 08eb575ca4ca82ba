"""WebEngine — Playwright-based browser engine.

Implements BaseEngine using Playwright async API. Playwright errors are
translated into EngineError / EngineTimeoutError.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from qarun.core.exceptions import EngineError, EngineTimeoutError
from qarun.core.models import EngineConfig, PseudoState, SelectorState
from qarun.engine.base import BaseEngine
from qarun.engine.devices import DeviceProfile

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _translate_errors(action: str, timeout_ms: int = 0) -> AsyncIterator[None]:
    try:
        yield
    except PlaywrightTimeoutError as e:
        msg = f"{action} timed out after {timeout_ms}ms: {e}"
        raise EngineTimeoutError(msg, timeout_ms) from e
    except PlaywrightError as e:
        msg = f"{action} failed: {e}"
        raise EngineError(msg) from e


class WebEngine(BaseEngine):
    """Playwright-based browser engine."""

    def __init__(self, config: EngineConfig | None = None) -> None:
        self._config = config or EngineConfig()
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self._device: DeviceProfile | None = None

    @property
    def page(self) -> Page:
        """Current Playwright page. Raises EngineError if not started."""
        if self._page is None:
            msg = "WebEngine not started. Call start() first."
            raise EngineError(msg)
        return self._page

    @property
    def device(self) -> DeviceProfile | None:
        """Active emulation profile, if any."""
        return self._device

    async def start(self) -> None:
        """Launch browser and create page."""
        try:
            pw = await async_playwright().start()
            self._playwright = pw

            browser_type = getattr(pw, self._config.browser, None)
            if browser_type is None:
                msg = f"Unknown browser: {self._config.browser}"
                raise EngineError(msg)

            self._browser = await browser_type.launch(headless=self._config.headless)
            await self._open_page()
        except EngineError:
            raise
        except Exception as e:
            msg = f"Failed to start WebEngine: {e}"
            raise EngineError(msg) from e

    async def stop(self) -> None:
        """Close browser and cleanup."""
        try:
            if self._context:
                await self._context.close()
            if self._browser:
                await self._browser.close()
            if self._playwright:
                await self._playwright.stop()
        except Exception as e:
            msg = f"Failed to stop WebEngine: {e}"
            raise EngineError(msg) from e
        finally:
            self._page = None
            self._context = None
            self._browser = None
            self._playwright = None

    async def _open_page(self, descriptor: dict[str, Any] | None = None) -> None:
        """(Re)create the browser context and page, optionally emulating a device."""
        if self._browser is None:
            msg = "WebEngine not started. Call start() first."
            raise EngineError(msg)
        if self._context is not None:
            await self._context.close()
        options: dict[str, Any] = descriptor or {
            "viewport": {
                "width": self._config.viewport_width,
                "height": self._config.viewport_height,
            },
        }
        self._context = await self._browser.new_context(**options, ignore_https_errors=True)
        self._page = await self._context.new_page()

    async def goto(self, url: str, timeout_ms: int) -> None:
        async with _translate_errors(f"Navigation to {url}", timeout_ms):
            await self.page.goto(url, timeout=timeout_ms, wait_until="load")

    async def get_url(self) -> str:
        return self.page.url

    async def wait_for_selector(
        self, selector: str, state: SelectorState, timeout_ms: int
    ) -> None:
        async with _translate_errors(f"Waiting for '{selector}' ({state})", timeout_ms):
            await self.page.wait_for_selector(selector, state=state.value, timeout=timeout_ms)

    async def find_by_xpath(self, expression: str) -> list[Any]:
        async with _translate_errors(f"XPath query {expression}"):
            return await self.page.query_selector_all(f"xpath={expression}")

    async def click(self, selector: str, timeout_ms: int) -> None:
        async with _translate_errors(f"Click on '{selector}'", timeout_ms):
            await self.page.click(selector, timeout=timeout_ms)

    async def type(self, selector: str, text: str, timeout_ms: int) -> None:
        async with _translate_errors(f"Typing into '{selector}'", timeout_ms):
            await self.page.type(selector, text, timeout=timeout_ms)

    async def text_content(self, selector: str, timeout_ms: int) -> str | None:
        async with _translate_errors(f"Reading text of '{selector}'", timeout_ms):
            return await self.page.text_content(selector, timeout=timeout_ms)

    async def wait_for_network_idle(self, timeout_ms: int) -> None:
        async with _translate_errors("Waiting for network idle", timeout_ms):
            await self.page.wait_for_load_state("networkidle", timeout=timeout_ms)

    async def pause(self, ms: int) -> None:
        await self.page.wait_for_timeout(ms)

    async def screenshot(self) -> bytes:
        """Capture current page as PNG bytes."""
        try:
            return await self.page.screenshot(type="png", full_page=False)
        except Exception as e:
            msg = f"Screenshot failed: {e}"
            raise EngineError(msg) from e

    async def press_key(self, key: str) -> None:
        await self.page.keyboard.press(key)

    async def keyboard_type(self, text: str) -> None:
        await self.page.keyboard.type(text)

    async def emulate(self, profile: DeviceProfile) -> None:
        """Reopen the page with the profile's Playwright device descriptor."""
        if self._playwright is None:
            msg = "WebEngine not started. Call start() first."
            raise EngineError(msg)
        descriptor = self._playwright.devices.get(profile.value)
        if descriptor is None:
            msg = f"Playwright has no descriptor for device '{profile.value}'"
            raise EngineError(msg)
        logger.debug("Emulating device %s", profile.value)
        await self._open_page(dict(descriptor))
        self._device = profile

    async def force_state(self, selector: str, states: list[PseudoState]) -> None:
        """Force pseudo-classes through the Chrome DevTools Protocol (chromium only)."""
        if self._context is None:
            msg = "WebEngine not started. Call start() first."
            raise EngineError(msg)
        async with _translate_errors(f"Forcing {states} on '{selector}'"):
            session = await self._context.new_cdp_session(self.page)
            await session.send("DOM.enable")
            await session.send("CSS.enable")
            document = await session.send("DOM.getDocument")
            node = await session.send(
                "DOM.querySelector",
                {"nodeId": document["root"]["nodeId"], "selector": selector},
            )
            if not node.get("nodeId"):
                msg = f"No element matches '{selector}'"
                raise EngineError(msg)
            await session.send(
                "CSS.forcePseudoState",
                {
                    "nodeId": node["nodeId"],
                    "forcedPseudoClasses": [s.value for s in states],
                },
            )
