"""Отпечатки кадров: перцептивный хэш и хэш центральной полосы."""

from __future__ import annotations

import cv2
import numpy as np

HASH_BITS = 64
HASH_MASK = (1 << HASH_BITS) - 1

FNV_OFFSET_BASIS = 0xCBF29CE484222325
FNV_PRIME = 0x100000001B3

PERCEPTUAL_GRID = 8
STRIP_GRID = 24


def to_gray(bitmap: np.ndarray) -> np.ndarray:
    """RGBA/RGB/серый буфер -> uint8 в оттенках серого."""
    if bitmap.ndim == 2:
        return bitmap.astype(np.uint8, copy=False)
    if bitmap.ndim == 3 and bitmap.shape[2] == 4:
        return cv2.cvtColor(bitmap, cv2.COLOR_RGBA2GRAY)
    if bitmap.ndim == 3 and bitmap.shape[2] == 3:
        return cv2.cvtColor(bitmap, cv2.COLOR_RGB2GRAY)
    raise ValueError("Неподдерживаемый формат кадра")


def downsample_gray(bitmap: np.ndarray, size: int) -> np.ndarray:
    """Уменьшает кадр до сетки ``size``×``size`` в оттенках серого."""
    gray = to_gray(np.ascontiguousarray(bitmap))
    return cv2.resize(gray, (size, size), interpolation=cv2.INTER_AREA)


def _is_empty(bitmap: np.ndarray) -> bool:
    return bitmap.ndim < 2 or bitmap.shape[0] == 0 or bitmap.shape[1] == 0


def perceptual_hash(bitmap: np.ndarray) -> int:
    """Average hash 8×8: бит равен 1, если ячейка ярче среднего.

    Биты упакованы в порядке развёртки, первая ячейка - старший бит.
    """
    if _is_empty(bitmap):
        return 0
    grid = downsample_gray(bitmap, PERCEPTUAL_GRID)
    avg = int(grid.sum(dtype=np.int64)) // grid.size
    bits = (grid > avg).astype(np.uint8).ravel()
    return int.from_bytes(np.packbits(bits).tobytes(), "big")


def fnv1a_64(data: bytes) -> int:
    value = FNV_OFFSET_BASIS
    for byte in data:
        value ^= byte
        value = (value * FNV_PRIME) & HASH_MASK
    return value


def content_strip_hash(bitmap: np.ndarray) -> int:
    """FNV-1a по средней трети кадра без боковых 20% (скроллбары, сайдбары).

    Чувствителен к небольшому сдвигу текста, в отличие от ``perceptual_hash``.
    """
    if _is_empty(bitmap):
        return 0
    height, width = bitmap.shape[:2]
    strip_y = height // 3
    strip_h = height // 3
    margin_x = width // 5
    strip = bitmap[strip_y : strip_y + strip_h, margin_x : width - margin_x]
    if _is_empty(strip):
        return 0
    grid = downsample_gray(strip, STRIP_GRID)
    return fnv1a_64(grid.tobytes())


def hamming_distance(a: int, b: int) -> int:
    return bin((a ^ b) & HASH_MASK).count("1")
