"""Поиск вертикального перекрытия между соседними кадрами."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .config import DEFAULT_CONFIG, ScrollCaptureConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverlapResult:
    offset_pixels: int
    confidence_percent: int


def _band(width: int, margin_ratio: float) -> Tuple[int, int]:
    """Горизонтальная полоса сравнения без краёв (скроллбары)."""
    margin = max(1, int(width * margin_ratio))
    start, end = margin, min(width, max(margin + 1, width - margin))
    if end <= start:
        return 0, width
    return start, end


def _extract_rgb(bitmap: np.ndarray, rows: slice, width: int, band: Tuple[int, int]) -> np.ndarray:
    start, end = band
    region = bitmap[rows, :width]
    if region.ndim == 2:
        region = np.repeat(region[:, :, None], 3, axis=2)
    return region[:, start:end, :3].astype(np.int16)


def _matching_rows(
    top_rows: np.ndarray,
    bottom_rows: np.ndarray,
    tolerance: int,
    max_differences: int,
) -> int:
    # Пиксель отличается, если хотя бы один канал RGB ушёл дальше допуска
    differs = np.abs(top_rows - bottom_rows).max(axis=2) > tolerance
    return int(np.count_nonzero(differs.sum(axis=1) <= max_differences))


def scan_candidates(
    top: np.ndarray,
    bottom: np.ndarray,
    config: ScrollCaptureConfig = DEFAULT_CONFIG,
) -> List[Tuple[int, int, int]]:
    """Возвращает ``(overlap, matching_rows, match_percent)`` для каждого кандидата."""
    width = min(top.shape[1], bottom.shape[1])
    search_height = min(top.shape[0], bottom.shape[0], config.overlap_search_cap)
    if width == 0 or search_height < config.min_overlap:
        return []

    band = _band(width, config.margin_ratio)
    top_data = _extract_rgb(top, slice(top.shape[0] - search_height, top.shape[0]), width, band)
    bottom_data = _extract_rgb(bottom, slice(0, search_height), width, band)
    max_differences = max(1, int((band[1] - band[0]) * config.row_mismatch_ratio))

    max_overlap = max(config.min_overlap, int(search_height * config.max_overlap_ratio))
    candidates = []
    for overlap in range(config.min_overlap, max_overlap + 1, config.overlap_step):
        compare_rows = min(config.compare_rows, overlap)
        first_top_row = search_height - overlap
        top_rows = top_data[first_top_row : first_top_row + compare_rows]
        bottom_rows = bottom_data[:compare_rows]
        if top_rows.shape[0] != compare_rows:
            candidates.append((overlap, 0, 0))
            continue
        matches = _matching_rows(top_rows, bottom_rows, config.pixel_tolerance, max_differences)
        candidates.append((overlap, matches, matches * 100 // compare_rows))
    return candidates


def find_overlap(
    top: np.ndarray,
    bottom: np.ndarray,
    config: ScrollCaptureConfig = DEFAULT_CONFIG,
) -> OverlapResult:
    """Сколько нижних строк ``top`` совпадает с верхними строками ``bottom``.

    Линейный перебор кандидатов с шагом ``overlap_step``; из почти равных по
    качеству вариантов берётся наименьшее перекрытие, чтобы не срезать
    содержимое при неоднозначном совпадении.
    """
    candidates = scan_candidates(top, bottom, config)
    if not candidates:
        logger.debug("Кадры слишком малы для поиска перекрытия")
        return OverlapResult(0, 0)

    best: Optional[Tuple[int, int, int]] = None
    for candidate in candidates:
        if best is None or candidate[1] > best[1]:
            best = candidate
    assert best is not None
    best_overlap, _, best_percent = best

    if best_percent < config.min_confidence:
        logger.debug(
            "Слабое совпадение (%d%% при %dpx), используем минимальное перекрытие",
            best_percent,
            best_overlap,
        )
        return OverlapResult(config.min_overlap, best_percent)

    threshold = best_percent - config.preference_tolerance
    overlap, _, percent = min(
        (c for c in candidates if c[2] >= threshold),
        key=lambda c: c[0],
    )
    logger.debug("Найдено перекрытие %dpx (%d%%, лучший %dpx)", overlap, percent, best_overlap)
    return OverlapResult(overlap, percent)
