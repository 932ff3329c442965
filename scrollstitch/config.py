"""Настройки скролл-захвата и их хранение в JSON."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Optional

APP_NAME = "ScrollStitch"
APP_VERSION = "1.0.0"
CONFIG_PATH = Path.home() / ".scrollstitch_config.json"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScrollCaptureConfig:
    # Цикл опроса
    poll_interval_ms: int = 50
    stabilization_delay: float = 0.25

    # Пороги расстояния Хэмминга
    change_threshold: int = 1
    duplicate_threshold: int = 1

    # Пустые кадры
    blank_frame_limit: int = 3
    blank_brightness: float = 240.0
    blank_variance: float = 50.0

    # Поиск перекрытия
    overlap_search_cap: int = 1200
    min_overlap: int = 20
    max_overlap_ratio: float = 0.7
    overlap_step: int = 2
    compare_rows: int = 200
    pixel_tolerance: int = 20
    row_mismatch_ratio: float = 0.2
    margin_ratio: float = 0.2
    min_confidence: int = 50
    preference_tolerance: int = 5

    def validate(self) -> None:
        if self.poll_interval_ms <= 0:
            raise ValueError("poll_interval_ms must be > 0")
        if self.stabilization_delay < 0:
            raise ValueError("stabilization_delay must be >= 0")
        for name in ("change_threshold", "duplicate_threshold"):
            if not 0 <= getattr(self, name) <= 64:
                raise ValueError(f"{name} must be in [0, 64]")
        if self.blank_frame_limit < 1:
            raise ValueError("blank_frame_limit must be >= 1")
        if self.min_overlap < 1 or self.overlap_step < 1 or self.compare_rows < 1:
            raise ValueError("min_overlap, overlap_step and compare_rows must be >= 1")
        for name in ("max_overlap_ratio", "row_mismatch_ratio"):
            if not 0.0 < getattr(self, name) <= 1.0:
                raise ValueError(f"{name} must be in (0, 1]")
        if not 0.0 <= self.margin_ratio < 0.5:
            raise ValueError("margin_ratio must be in [0, 0.5)")
        if not 0 <= self.min_confidence <= 100:
            raise ValueError("min_confidence must be in [0, 100]")


DEFAULT_CONFIG = ScrollCaptureConfig()


def load_config(path: Optional[Path] = None) -> ScrollCaptureConfig:
    """Читает настройки, неизвестные ключи и битый файл игнорируются."""
    path = Path(path) if path is not None else CONFIG_PATH
    if not path.exists():
        return DEFAULT_CONFIG
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Не удалось прочитать настройки %s: %s", path, exc)
        return DEFAULT_CONFIG
    if not isinstance(data, dict):
        return DEFAULT_CONFIG

    known = {f.name for f in fields(ScrollCaptureConfig)}
    overrides = {k: v for k, v in data.items() if k in known}
    cfg = replace(DEFAULT_CONFIG, **overrides)
    try:
        cfg.validate()
    except (TypeError, ValueError) as exc:
        logger.warning("Некорректные настройки в %s: %s", path, exc)
        return DEFAULT_CONFIG
    return cfg


def save_config(cfg: ScrollCaptureConfig, path: Optional[Path] = None) -> None:
    path = Path(path) if path is not None else CONFIG_PATH
    path.write_text(json.dumps(asdict(cfg), ensure_ascii=False, indent=2), encoding="utf-8")
