"""Ошибки скролл-захвата."""

from __future__ import annotations


class ScrollCaptureError(Exception):
    """Базовая ошибка сессии скролл-захвата."""

    message = "Ошибка скролл-захвата"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.message)


class AlreadyActiveError(ScrollCaptureError):
    message = "Сессия скролл-захвата уже запущена"


class CancelledError(ScrollCaptureError):
    message = "Скролл-захват отменён"


class NoFramesCapturedError(ScrollCaptureError):
    message = "Не захвачено ни одного кадра. Попробуйте прокрутить окно."


class NoRegionSelectedError(ScrollCaptureError):
    message = "Для скролл-захвата нужно выделить область экрана"


class CaptureFailedError(ScrollCaptureError):
    message = "Не удалось снять область экрана"


class StitchingFailedError(ScrollCaptureError):
    def __init__(self, reason: object) -> None:
        self.reason = reason
        super().__init__(f"Не удалось склеить изображения: {reason}")
