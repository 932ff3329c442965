"""Скролл-захват: снимки области при прокрутке и склейка в одно изображение."""

from .config import ScrollCaptureConfig, load_config, save_config
from .errors import (
    AlreadyActiveError,
    CancelledError,
    CaptureFailedError,
    NoFramesCapturedError,
    NoRegionSelectedError,
    ScrollCaptureError,
    StitchingFailedError,
)
from .image_stitcher import ImageStitcher, stitch_frames, to_pil
from .overlap import OverlapResult, find_overlap
from .sampler import MssRegionSampler, Region
from .session import CaptureResult, SessionState

__all__ = [
    "AlreadyActiveError",
    "CancelledError",
    "CaptureFailedError",
    "CaptureResult",
    "ImageStitcher",
    "MssRegionSampler",
    "NoFramesCapturedError",
    "NoRegionSelectedError",
    "OverlapResult",
    "Region",
    "ScrollCaptureConfig",
    "ScrollCaptureError",
    "SessionState",
    "StitchingFailedError",
    "find_overlap",
    "load_config",
    "save_config",
    "stitch_frames",
    "to_pil",
]
