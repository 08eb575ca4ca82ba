"""Supported device emulation profiles.

A closed table mapping profile names to Playwright device descriptors.
Unknown names are rejected with DeviceProfileError instead of being
passed through to the browser.
"""

from __future__ import annotations

from enum import StrEnum

from qarun.core.exceptions import DeviceProfileError


class DeviceProfile(StrEnum):
    """Device profile, valued by its Playwright descriptor name."""

    IPHONE_13 = "iPhone 13"
    IPHONE_13_PRO_MAX = "iPhone 13 Pro Max"
    IPHONE_SE = "iPhone SE"
    PIXEL_5 = "Pixel 5"
    GALAXY_S9_PLUS = "Galaxy S9+"
    IPAD_MINI = "iPad Mini"
    IPAD_PRO_11 = "iPad Pro 11"
    DESKTOP_CHROME = "Desktop Chrome"


def _normalize(name: str) -> str:
    return "".join(ch for ch in name.lower() if ch.isalnum() or ch == "+")


_LOOKUP: dict[str, DeviceProfile] = {}
for _profile in DeviceProfile:
    _LOOKUP[_normalize(_profile.value)] = _profile
    _LOOKUP[_normalize(_profile.name)] = _profile


def resolve_device(name: str | DeviceProfile) -> DeviceProfile:
    """Resolve a profile by descriptor name or enum name, case/space insensitive.

    Raises:
        DeviceProfileError: If the name is not a supported profile.
    """
    if isinstance(name, DeviceProfile):
        return name
    profile = _LOOKUP.get(_normalize(name))
    if profile is None:
        supported = ", ".join(p.value for p in DeviceProfile)
        msg = f"Unknown device profile '{name}'. Supported: {supported}"
        raise DeviceProfileError(msg)
    return profile
