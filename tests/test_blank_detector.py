from __future__ import annotations

import numpy as np

from scrollstitch.blank_detector import brightness_stats, is_blank
from synthetic import noise_canvas, uniform_frame


def test_uniform_near_white_frame_is_blank():
    assert is_blank(uniform_frame(200, 200, 250))


def test_black_square_breaks_blankness():
    frame = uniform_frame(200, 200, 250)
    frame[75:125, 75:125, :3] = 0

    _, variance = brightness_stats(frame)
    assert variance > 50
    assert not is_blank(frame)


def test_uniform_dark_frame_is_not_blank():
    assert not is_blank(uniform_frame(200, 200, 10))


def test_textured_frame_is_not_blank():
    assert not is_blank(noise_canvas(200, 200, seed=1))


def test_rgb_input_supported():
    frame = np.full((64, 64, 3), 252, dtype=np.uint8)
    assert is_blank(frame)


def test_zero_sized_frame_is_blank():
    assert is_blank(np.zeros((0, 0, 4), dtype=np.uint8))
