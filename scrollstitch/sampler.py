"""Снимок фиксированной области экрана через mss."""

from __future__ import annotations

import logging
from typing import NamedTuple, Optional, Sequence

import cv2
import mss
import mss.exception
import numpy as np

from .errors import CaptureFailedError

logger = logging.getLogger(__name__)


class Region(NamedTuple):
    """Область в физических пикселях: ``(left, top, width, height)``."""

    left: int
    top: int
    width: int
    height: int

    @classmethod
    def from_rect(cls, rect: Sequence[int]) -> "Region":
        left, top, width, height = rect
        return cls(int(left), int(top), int(width), int(height))

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def as_monitor(self) -> dict:
        return {"left": self.left, "top": self.top, "width": self.width, "height": self.height}


class MssRegionSampler:
    """Возвращает RGBA-кадр области; при ошибке бросает ``CaptureFailedError``.

    Экземпляр mss создаётся при первом вызове и используется в том же потоке.
    """

    def __init__(self) -> None:
        self._sct: Optional[mss.base.MSSBase] = None

    def __call__(self, region: Region) -> np.ndarray:
        try:
            if self._sct is None:
                self._sct = mss.mss()
            shot = self._sct.grab(region.as_monitor())
        except mss.exception.ScreenShotError as exc:
            raise CaptureFailedError(str(exc)) from exc
        frame = np.array(shot)
        if frame.ndim != 3 or frame.shape[2] != 4:
            raise CaptureFailedError("Неожиданный формат снимка")
        # mss отдаёт BGRA
        return cv2.cvtColor(frame, cv2.COLOR_BGRA2RGBA)

    def close(self) -> None:
        if self._sct is not None:
            self._sct.close()
            self._sct = None
