"""Определение пустых кадров (прокрутили за конец содержимого)."""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .hashing import downsample_gray

BLANK_GRID = 16


def brightness_stats(bitmap: np.ndarray) -> Tuple[float, float]:
    """Средняя яркость и дисперсия по сетке 16×16."""
    grid = downsample_gray(bitmap, BLANK_GRID).astype(np.float64)
    return float(grid.mean()), float(grid.var())


def is_blank(bitmap: np.ndarray, brightness: float = 240.0, variance: float = 50.0) -> bool:
    # Оба условия обязательны: равномерно тёмный кадр пустым не считается
    if bitmap.ndim < 2 or bitmap.shape[0] == 0 or bitmap.shape[1] == 0:
        return True
    mean, var = brightness_stats(bitmap)
    return mean > brightness and var < variance
