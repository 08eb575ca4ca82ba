"""BaseEngine ABC — browser engine interface.

WebEngine (Playwright) implements this. ActionExecutor only talks to the
browser through these methods, so tests can substitute a mock engine.
Implementations raise EngineError (EngineTimeoutError on timeouts).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from qarun.core.models import PseudoState, SelectorState
    from qarun.engine.devices import DeviceProfile


class BaseEngine(ABC):
    """Browser engine abstract interface."""

    @abstractmethod
    async def start(self) -> None:
        """Launch browser and open a page."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Close browser."""
        ...

    async def restart(self) -> None:
        """Close and relaunch the browser with a fresh page."""
        await self.stop()
        await self.start()

    @abstractmethod
    async def goto(self, url: str, timeout_ms: int) -> None:
        """Navigate to URL."""
        ...

    @abstractmethod
    async def get_url(self) -> str:
        """Return current URL."""
        ...

    @abstractmethod
    async def wait_for_selector(
        self, selector: str, state: SelectorState, timeout_ms: int
    ) -> None:
        """Wait until selector reaches state."""
        ...

    @abstractmethod
    async def find_by_xpath(self, expression: str) -> list[Any]:
        """Return element handles matching an XPath expression."""
        ...

    @abstractmethod
    async def click(self, selector: str, timeout_ms: int) -> None:
        """Click the first element matching selector."""
        ...

    @abstractmethod
    async def type(self, selector: str, text: str, timeout_ms: int) -> None:
        """Type text into the element matching selector."""
        ...

    @abstractmethod
    async def text_content(self, selector: str, timeout_ms: int) -> str | None:
        """Return textContent of the element matching selector."""
        ...

    @abstractmethod
    async def wait_for_network_idle(self, timeout_ms: int) -> None:
        """Wait until there is no network activity."""
        ...

    @abstractmethod
    async def pause(self, ms: int) -> None:
        """Sleep on the page clock."""
        ...

    @abstractmethod
    async def screenshot(self) -> bytes:
        """Capture current page as PNG bytes."""
        ...

    @abstractmethod
    async def press_key(self, key: str) -> None:
        """Press a single key (Enter, Tab, Escape etc.)."""
        ...

    @abstractmethod
    async def keyboard_type(self, text: str) -> None:
        """Type text at current focus."""
        ...

    @abstractmethod
    async def emulate(self, profile: DeviceProfile) -> None:
        """Switch the page to a device emulation profile."""
        ...

    @abstractmethod
    async def force_state(self, selector: str, states: list[PseudoState]) -> None:
        """Force CSS pseudo-classes on the element matching selector."""
        ...
