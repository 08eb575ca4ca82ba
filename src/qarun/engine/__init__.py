"""Browser engine, actions and screenshot comparison."""

from qarun.engine.comparator import ScreenshotComparator
from qarun.engine.devices import DeviceProfile, resolve_device
from qarun.engine.executor import ActionExecutor, escape_xpath_text
from qarun.engine.web import WebEngine

__all__ = [
    "ActionExecutor",
    "DeviceProfile",
    "ScreenshotComparator",
    "WebEngine",
    "escape_xpath_text",
    "resolve_device",
]
