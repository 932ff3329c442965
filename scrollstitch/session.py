"""Машина состояний сессии скролл-захвата.

Логика тика не зависит от таймеров: ``transition`` получает текущее
состояние и событие и возвращает новое состояние плюс список эффектов,
которые выполняет оболочка (``session_runner.ScrollCaptureSession``).
Время передаётся в событиях, поэтому дебаунс проверяется синтетическими
тиками с заданными метками времени.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np

from .blank_detector import is_blank
from .config import DEFAULT_CONFIG, ScrollCaptureConfig
from .errors import (
    AlreadyActiveError,
    CancelledError,
    NoFramesCapturedError,
    NoRegionSelectedError,
    ScrollCaptureError,
    StitchingFailedError,
)
from .frame_store import CapturedFrame, FrameStore
from .hashing import content_strip_hash, hamming_distance, perceptual_hash
from .sampler import Region

logger = logging.getLogger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    MONITORING = "monitoring"
    STITCHING = "stitching"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# Из этих состояний можно начать новую сессию
_RESTARTABLE = (SessionState.IDLE, SessionState.COMPLETED, SessionState.CANCELLED)


@dataclass(frozen=True)
class StabilityTracker:
    last_fingerprint: int = 0
    last_change_at: Optional[float] = None
    consecutive_blank_count: int = 0


@dataclass(frozen=True)
class CaptureResult:
    """Итог сессии: склеенное изображение либо ошибка."""

    image: Optional[np.ndarray] = None
    error: Optional[ScrollCaptureError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> np.ndarray:
        if self.error is not None:
            raise self.error
        assert self.image is not None
        return self.image


@dataclass(frozen=True)
class SessionModel:
    state: SessionState = SessionState.IDLE
    region: Optional[Region] = None
    frames: FrameStore = field(default_factory=FrameStore)
    tracker: StabilityTracker = field(default_factory=StabilityTracker)


# ---- события -------------------------------------------------------
@dataclass(frozen=True)
class Start:
    region: Optional[Region]


@dataclass(frozen=True, eq=False)
class Tick:
    sample: Optional[np.ndarray]
    now: float


@dataclass(frozen=True)
class Finish:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True, eq=False)
class StitchSucceeded:
    image: np.ndarray


@dataclass(frozen=True)
class StitchFailed:
    error: BaseException


Event = Union[Start, Tick, Finish, Cancel, StitchSucceeded, StitchFailed]


# ---- эффекты -------------------------------------------------------
@dataclass(frozen=True)
class StartTimer:
    interval_ms: int


@dataclass(frozen=True)
class StopTimer:
    pass


@dataclass(frozen=True)
class EmitProgress:
    frame_count: int


@dataclass(frozen=True)
class EmitEndOfContent:
    blank_count: int


@dataclass(frozen=True, eq=False)
class RunStitcher:
    frames: Tuple[np.ndarray, ...]


@dataclass(frozen=True)
class EmitCompletion:
    result: CaptureResult


Effect = Union[StartTimer, StopTimer, EmitProgress, EmitEndOfContent, RunStitcher, EmitCompletion]


@dataclass(frozen=True)
class Transition:
    model: SessionModel
    effects: Tuple[Effect, ...] = ()


def _idle_model(model: SessionModel, state: SessionState) -> SessionModel:
    # Кадры и трекер освобождаются вместе с окончанием сессии
    return SessionModel(state=state, frames=model.frames.clear())


def _on_start(model: SessionModel, event: Start, config: ScrollCaptureConfig) -> Transition:
    if model.state not in _RESTARTABLE:
        raise AlreadyActiveError()
    region = event.region
    if region is None or region.is_empty:
        raise NoRegionSelectedError()
    logger.info("Начат мониторинг области %s", tuple(region))
    new_model = SessionModel(
        state=SessionState.MONITORING,
        region=region,
        frames=FrameStore(duplicate_threshold=config.duplicate_threshold),
        tracker=StabilityTracker(),
    )
    return Transition(new_model, (StartTimer(config.poll_interval_ms),))


def _on_tick(model: SessionModel, event: Tick, config: ScrollCaptureConfig) -> Transition:
    if model.state is not SessionState.MONITORING or event.sample is None:
        return Transition(model)

    sample, now = event.sample, event.now
    tracker = model.tracker
    strip_hash = content_strip_hash(sample)

    if is_blank(sample, config.blank_brightness, config.blank_variance):
        count = tracker.consecutive_blank_count + 1
        logger.debug("Пустой кадр (%d/%d)", count, config.blank_frame_limit)
        effects: Tuple[Effect, ...] = ()
        if count == config.blank_frame_limit:
            logger.debug("Несколько пустых кадров подряд, похоже, содержимое закончилось")
            effects = (EmitEndOfContent(count),)
        return Transition(replace(model, tracker=replace(tracker, consecutive_blank_count=count)), effects)

    tracker = replace(tracker, consecutive_blank_count=0)

    if hamming_distance(strip_hash, tracker.last_fingerprint) >= config.change_threshold:
        # Содержимое ещё движется, ждём стабилизации
        tracker = replace(tracker, last_fingerprint=strip_hash, last_change_at=now)
        return Transition(replace(model, tracker=tracker))

    if tracker.last_change_at is None or now - tracker.last_change_at < config.stabilization_delay:
        return Transition(replace(model, tracker=tracker))

    settled_for = now - tracker.last_change_at
    tracker = replace(tracker, last_change_at=None)
    fingerprint = perceptual_hash(sample)
    if model.frames.is_duplicate_of_last(fingerprint):
        logger.debug("Кадр почти совпадает с последним, пропускаем")
        return Transition(replace(model, tracker=tracker))

    frames = model.frames.append(CapturedFrame(bitmap=sample, captured_at=now, fingerprint=fingerprint))
    logger.debug("Захвачен стабильный кадр %d через %.2fs", len(frames), settled_for)
    return Transition(replace(model, frames=frames, tracker=tracker), (EmitProgress(len(frames)),))


def _on_finish(model: SessionModel) -> Transition:
    if model.state is not SessionState.MONITORING:
        return Transition(model)

    frames = model.frames
    # Последний кадр мог сняться перед нажатием «Готово» без нового содержимого
    if frames.tail_is_duplicate():
        frames = frames.drop_last()

    if not len(frames):
        logger.info("Завершение без кадров")
        return Transition(
            _idle_model(model, SessionState.IDLE),
            (StopTimer(), EmitCompletion(CaptureResult(error=NoFramesCapturedError()))),
        )

    logger.info("Склейка %d кадров", len(frames))
    return Transition(
        replace(model, state=SessionState.STITCHING, frames=frames),
        (StopTimer(), RunStitcher(tuple(frames.bitmaps()))),
    )


def _on_cancel(model: SessionModel) -> Transition:
    if model.state is not SessionState.MONITORING:
        return Transition(model)
    logger.info("Скролл-захват отменён")
    return Transition(
        _idle_model(model, SessionState.CANCELLED),
        (StopTimer(), EmitCompletion(CaptureResult(error=CancelledError()))),
    )


def _on_stitch_done(model: SessionModel, event: Union[StitchSucceeded, StitchFailed]) -> Transition:
    if model.state is not SessionState.STITCHING:
        return Transition(model)
    if isinstance(event, StitchSucceeded):
        logger.info("Склейка завершена")
        result = CaptureResult(image=event.image)
        return Transition(_idle_model(model, SessionState.COMPLETED), (EmitCompletion(result),))

    error = event.error
    if not isinstance(error, ScrollCaptureError):
        error = StitchingFailedError(error)
    logger.info("Склейка не удалась: %s", error)
    return Transition(_idle_model(model, SessionState.IDLE), (EmitCompletion(CaptureResult(error=error)),))


def transition(
    model: SessionModel,
    event: Event,
    config: ScrollCaptureConfig = DEFAULT_CONFIG,
) -> Transition:
    """Чистая функция переходов ``(состояние, событие) -> (состояние, эффекты)``.

    ``Start`` в активной сессии бросает ``AlreadyActiveError``, без области -
    ``NoRegionSelectedError``; состояние при этом не меняется.
    """
    if isinstance(event, Start):
        return _on_start(model, event, config)
    if isinstance(event, Tick):
        return _on_tick(model, event, config)
    if isinstance(event, Finish):
        return _on_finish(model)
    if isinstance(event, Cancel):
        return _on_cancel(model)
    if isinstance(event, (StitchSucceeded, StitchFailed)):
        return _on_stitch_done(model, event)
    raise TypeError(f"Неизвестное событие: {event!r}")
