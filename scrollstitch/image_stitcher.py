"""Сборка длинного изображения из серии кадров."""

from __future__ import annotations

import logging
from typing import Iterable, List

import cv2
import numpy as np
from PIL import Image

from .config import DEFAULT_CONFIG, ScrollCaptureConfig
from .errors import NoFramesCapturedError, StitchingFailedError
from .overlap import find_overlap

logger = logging.getLogger(__name__)


def to_rgba(frame: np.ndarray) -> np.ndarray:
    if frame is None:
        raise ValueError("Пустой кадр")
    if frame.ndim == 3 and frame.shape[2] == 4:
        return frame
    if frame.ndim == 3 and frame.shape[2] == 3:
        return cv2.cvtColor(frame, cv2.COLOR_RGB2RGBA)
    if frame.ndim == 2:
        return cv2.cvtColor(frame, cv2.COLOR_GRAY2RGBA)
    raise ValueError("Неподдерживаемый формат кадра")


def to_pil(frame: np.ndarray) -> Image.Image:
    """RGBA-буфер -> ``PIL.Image`` для дальнейшей обработки вызывающей стороной."""
    return Image.fromarray(np.ascontiguousarray(to_rgba(frame)))


class ImageStitcher:
    """Склеивает кадры по найденным перекрытиям, сверху вниз."""

    def __init__(self, frames: Iterable[np.ndarray], config: ScrollCaptureConfig = DEFAULT_CONFIG):
        self.frames = list(frames)
        self.config = config

    def overlaps(self) -> List[int]:
        """Перекрытие каждого кадра с предыдущим, для первого кадра 0."""
        result = [0]
        for idx in range(1, len(self.frames)):
            prev, frame = self.frames[idx - 1], self.frames[idx]
            overlap = find_overlap(prev, frame, self.config)
            logger.debug(
                "Перекрытие кадров %d и %d: %dpx (%d%%)",
                idx - 1,
                idx,
                overlap.offset_pixels,
                overlap.confidence_percent,
            )
            # Позиция следующего кадра не должна уходить выше предыдущего
            result.append(min(overlap.offset_pixels, prev.shape[0]))
        return result

    def positions(self) -> List[int]:
        positions = [0]
        for idx, overlap in enumerate(self.overlaps()[1:], start=1):
            positions.append(positions[idx - 1] + self.frames[idx - 1].shape[0] - overlap)
        return positions

    def stitch(self) -> np.ndarray:
        if not self.frames:
            raise NoFramesCapturedError()
        if len(self.frames) == 1:
            return self.frames[0]

        try:
            positions = self.positions()
            width = int(self.frames[0].shape[1])
            total_height = positions[-1] + int(self.frames[-1].shape[0])
            logger.debug("Итоговый размер: %dx%d", width, total_height)

            canvas = np.zeros((total_height, width, 4), dtype=np.uint8)
            # Более поздние кадры рисуются поверх: шов остаётся за свежим кадром
            for y, frame in zip(positions, self.frames):
                rgba = to_rgba(frame)
                w = min(width, rgba.shape[1])
                canvas[y : y + rgba.shape[0], :w] = rgba[:, :w]
        except (MemoryError, ValueError) as exc:
            raise StitchingFailedError(exc) from exc

        logger.info("Склеено кадров: %d, размер %dx%d", len(self.frames), width, total_height)
        return canvas


def stitch_frames(frames: Iterable[np.ndarray], config: ScrollCaptureConfig = DEFAULT_CONFIG) -> np.ndarray:
    return ImageStitcher(frames, config).stitch()
