"""BaselineDiffer — percentage pixel difference against local baseline images.

Baselines live at {baselines_dir}/{key}.png. The difference is the share of
pixels whose grayscale delta exceeds a small per-pixel tolerance, so
anti-aliasing noise does not count as a change.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import cv2
import numpy as np

from qarun.core.models import DiffResult

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_name(key: str) -> str:
    """key with path and other unsafe characters replaced, usable as a file name."""
    return _UNSAFE_KEY_CHARS.sub("_", key)


class BaselineDiffer:
    """Diff screenshots against PNG baselines on disk."""

    def __init__(
        self,
        baselines_dir: Path,
        pixel_tolerance: int = 16,
        update_baselines: bool = False,
    ) -> None:
        self._baselines_dir = baselines_dir
        self._pixel_tolerance = pixel_tolerance
        self._update_baselines = update_baselines

    def baseline_path(self, key: str) -> Path:
        return self._baselines_dir / f"{safe_name(key)}.png"

    async def compare_screenshots(self, key: str, screenshot: bytes) -> DiffResult:
        """Return the difference percent, or None when there is no usable baseline."""
        path = self.baseline_path(key)
        if not path.exists():
            if self._update_baselines:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(screenshot)
                logger.info("Stored new baseline for '%s' at %s", key, path)
            return DiffResult(key=key)

        percent = self.difference_percent(screenshot, path)
        return DiffResult(key=key, present_difference_percent=percent)

    def difference_percent(self, current: bytes, baseline_path: Path) -> float | None:
        """Compare current PNG bytes with a baseline file.

        Returns:
            Percentage (0-100) of differing pixels, rounded to 2 decimals,
            or None if either image cannot be decoded.
        """
        img1 = cv2.imdecode(np.frombuffer(current, np.uint8), cv2.IMREAD_GRAYSCALE)
        img2 = cv2.imread(str(baseline_path), cv2.IMREAD_GRAYSCALE)
        if img1 is None or img2 is None:
            logger.warning("Cannot decode screenshot or baseline: %s", baseline_path)
            return None
        # Resize baseline to match current
        if img2.shape != img1.shape:
            img2 = cv2.resize(img2, (img1.shape[1], img1.shape[0]))
        delta = cv2.absdiff(img1, img2)
        changed = int(np.count_nonzero(delta > self._pixel_tolerance))
        return round(changed * 100.0 / delta.size, 2)
