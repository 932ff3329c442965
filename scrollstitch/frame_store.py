"""Хранилище принятых кадров сессии."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import numpy as np

from .hashing import hamming_distance


@dataclass(frozen=True, eq=False)
class CapturedFrame:
    bitmap: np.ndarray
    captured_at: float
    fingerprint: int

    @property
    def height(self) -> int:
        return int(self.bitmap.shape[0])

    @property
    def width(self) -> int:
        return int(self.bitmap.shape[1])


class FrameStore:
    """Упорядоченная последовательность кадров, только на добавление.

    Значение неизменяемое: ``append`` и ``drop_last`` возвращают новое
    хранилище, поэтому функция переходов сессии остаётся чистой.
    """

    __slots__ = ("_frames", "duplicate_threshold")

    def __init__(self, frames: Tuple[CapturedFrame, ...] = (), duplicate_threshold: int = 1) -> None:
        self._frames = tuple(frames)
        self.duplicate_threshold = duplicate_threshold

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[CapturedFrame]:
        return iter(self._frames)

    def __getitem__(self, index: int) -> CapturedFrame:
        return self._frames[index]

    def __repr__(self) -> str:
        return f"FrameStore(frames={len(self._frames)})"

    @property
    def last(self) -> Optional[CapturedFrame]:
        return self._frames[-1] if self._frames else None

    def is_duplicate_of_last(self, fingerprint: int) -> bool:
        last = self.last
        return last is not None and hamming_distance(last.fingerprint, fingerprint) <= self.duplicate_threshold

    def append(self, frame: CapturedFrame) -> "FrameStore":
        if self.is_duplicate_of_last(frame.fingerprint):
            raise ValueError("Кадр совпадает с предыдущим")
        return FrameStore(self._frames + (frame,), self.duplicate_threshold)

    def drop_last(self) -> "FrameStore":
        return FrameStore(self._frames[:-1], self.duplicate_threshold)

    def clear(self) -> "FrameStore":
        return FrameStore((), self.duplicate_threshold)

    def tail_is_duplicate(self) -> bool:
        """Два последних кадра почти одинаковы."""
        if len(self._frames) < 2:
            return False
        prev, last = self._frames[-2], self._frames[-1]
        return hamming_distance(prev.fingerprint, last.fingerprint) <= self.duplicate_threshold

    def bitmaps(self) -> List[np.ndarray]:
        return [frame.bitmap for frame in self._frames]
