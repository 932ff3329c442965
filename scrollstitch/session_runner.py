"""Qt-оболочка над машиной состояний: таймер опроса и фоновая склейка."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional, Sequence

import mss.exception
import numpy as np
from PySide6.QtCore import QObject, QThread, QTimer, Signal, Slot

from .config import DEFAULT_CONFIG, ScrollCaptureConfig
from .errors import CaptureFailedError
from .frame_store import FrameStore
from .image_stitcher import stitch_frames
from .sampler import MssRegionSampler, Region
from .session import (
    CaptureResult,
    Cancel,
    EmitCompletion,
    EmitEndOfContent,
    EmitProgress,
    Event,
    Finish,
    RunStitcher,
    SessionModel,
    SessionState,
    Start,
    StartTimer,
    StitchFailed,
    StitchSucceeded,
    StopTimer,
    Tick,
    Transition,
    transition,
)

logger = logging.getLogger(__name__)

Sampler = Callable[[Region], np.ndarray]
ProgressCallback = Callable[[int], None]
CompletionCallback = Callable[[CaptureResult], None]


class _StitchThread(QThread):
    stitched = Signal(object)
    failed = Signal(object)

    def __init__(self, frames: Sequence[np.ndarray], config: ScrollCaptureConfig, parent=None) -> None:
        super().__init__(parent)
        self._frames = list(frames)
        self._config = config

    def run(self) -> None:  # noqa: D401 - поток склейки
        try:
            image = stitch_frames(self._frames, self._config)
        except Exception as exc:  # noqa: BLE001
            logging.exception("Ошибка склейки: %s", exc)
            self.failed.emit(exc)
            return
        finally:
            self._frames = []
        self.stitched.emit(image)


class ScrollCaptureSession(QObject):
    """Сессия, в которой пользователь сам прокручивает окно.

    Кадры снимаются автоматически, когда содержимое перестаёт меняться.
    Тики идут от одноразового ``QTimer``, который перезапускается после
    каждого тика, так что таймер всегда один и тики не пересекаются.
    """

    progress_updated = Signal(int)
    end_of_content = Signal(int)
    capture_completed = Signal(object)
    error_occurred = Signal(str)

    def __init__(
        self,
        sampler: Optional[Sampler] = None,
        config: ScrollCaptureConfig = DEFAULT_CONFIG,
        clock: Callable[[], float] = time.monotonic,
        threaded_stitching: bool = True,
        parent=None,
    ) -> None:
        super().__init__(parent)
        self._owns_sampler = sampler is None
        self._sampler: Sampler = sampler or MssRegionSampler()
        self._config = config
        self._clock = clock
        self._threaded_stitching = threaded_stitching
        self._model = SessionModel()
        self._on_progress: Optional[ProgressCallback] = None
        self._on_complete: Optional[CompletionCallback] = None
        self._stitch_thread: Optional[_StitchThread] = None

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._on_timer)

    # ---- public API ------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self._model.state

    @property
    def frames(self) -> FrameStore:
        return self._model.frames

    @property
    def frame_count(self) -> int:
        return len(self._model.frames)

    @property
    def timer_active(self) -> bool:
        return self._timer.isActive()

    def start(
        self,
        region,
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[CompletionCallback] = None,
    ) -> None:
        """Начинает мониторинг области.

        Бросает ``AlreadyActiveError``, если сессия уже идёт, и
        ``NoRegionSelectedError`` без области; состояние при этом не меняется.
        """
        if region is not None and not isinstance(region, Region):
            region = Region.from_rect(region)
        result = transition(self._model, Start(region), self._config)
        self._on_progress = on_progress
        self._on_complete = on_complete
        self._apply(result)

    @Slot()
    def finish(self) -> None:
        self._dispatch(Finish())

    @Slot()
    def cancel(self) -> None:
        self._dispatch(Cancel())

    def tick(self) -> None:
        """Один тик: снимок, хэш, классификация, возможно новый кадр."""
        if self._model.state is not SessionState.MONITORING:
            return
        sample = self._sample(self._model.region)
        self._dispatch(Tick(sample, self._clock()))

    # ---- internals -------------------------------------------------
    def _sample(self, region: Region) -> Optional[np.ndarray]:
        # Ошибка снимка не прерывает сессию, повторим на следующем тике
        try:
            return self._sampler(region)
        except (CaptureFailedError, mss.exception.ScreenShotError) as exc:
            logger.debug("Не удалось снять область: %s", exc)
            return None
        except Exception as exc:  # noqa: BLE001
            logger.debug("Сбой сэмплера: %r", exc)
            return None

    @Slot()
    def _on_timer(self) -> None:
        try:
            self.tick()
        except Exception as exc:  # noqa: BLE001
            logger.exception("Ошибка тика: %s", exc)
        finally:
            # Пока идёт мониторинг, следующий тик должен быть запланирован
            if self._model.state is SessionState.MONITORING:
                self._timer.start()

    def _dispatch(self, event: Event) -> None:
        self._apply(transition(self._model, event, self._config))

    def _apply(self, result: Transition) -> None:
        self._model = result.model
        for effect in result.effects:
            if isinstance(effect, StartTimer):
                self._timer.start(effect.interval_ms)
            elif isinstance(effect, StopTimer):
                self._timer.stop()
            elif isinstance(effect, EmitProgress):
                if self._on_progress is not None:
                    self._on_progress(effect.frame_count)
                self.progress_updated.emit(effect.frame_count)
            elif isinstance(effect, EmitEndOfContent):
                self.end_of_content.emit(effect.blank_count)
            elif isinstance(effect, RunStitcher):
                self._run_stitcher(effect.frames)
            elif isinstance(effect, EmitCompletion):
                self._complete(effect.result)

    def _complete(self, result: CaptureResult) -> None:
        callback = self._on_complete
        self._on_complete = None
        self._on_progress = None
        self._release_sampler()
        if callback is not None:
            callback(result)
        if result.ok:
            self.capture_completed.emit(result.image)
        else:
            self.error_occurred.emit(str(result.error))

    def _release_sampler(self) -> None:
        # Свой mss-сэмплер закрываем, при следующем старте он откроется заново
        if self._owns_sampler:
            self._sampler.close()

    def _run_stitcher(self, frames: Sequence[np.ndarray]) -> None:
        if not self._threaded_stitching:
            try:
                image = stitch_frames(frames, self._config)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Ошибка склейки: %s", exc)
                self._on_stitch_failed(exc)
                return
            self._on_stitched(image)
            return

        self._stitch_thread = _StitchThread(frames, self._config, parent=self)
        self._stitch_thread.stitched.connect(self._on_stitched)
        self._stitch_thread.failed.connect(self._on_stitch_failed)
        self._stitch_thread.finished.connect(self._cleanup_thread)
        self._stitch_thread.start()

    @Slot(object)
    def _on_stitched(self, image: np.ndarray) -> None:
        self._dispatch(StitchSucceeded(image))

    @Slot(object)
    def _on_stitch_failed(self, error: BaseException) -> None:
        self._dispatch(StitchFailed(error))

    @Slot()
    def _cleanup_thread(self) -> None:
        thread = self.sender()
        if thread is not None:
            thread.deleteLater()
        if thread is self._stitch_thread:
            self._stitch_thread = None
