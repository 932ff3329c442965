from __future__ import annotations

import numpy as np

from scrollstitch.config import ScrollCaptureConfig
from scrollstitch.overlap import OverlapResult, find_overlap, scan_candidates
from synthetic import noise_canvas, scroll_pair, uniform_frame


def test_finds_exact_overlap_of_shifted_frames():
    _, top, bottom = scroll_pair(overlap=100)

    result = find_overlap(top, bottom)

    assert abs(result.offset_pixels - 100) <= 2
    assert result.confidence_percent >= 90


def test_ignores_scrollbar_columns():
    _, top, bottom = scroll_pair(overlap=120, width=200)
    bottom[:, :15, :3] = 0
    bottom[:, -15:, :3] = 255

    assert find_overlap(top, bottom).offset_pixels == 120


def test_tolerates_compression_noise():
    _, top, bottom = scroll_pair(overlap=80)
    rng = np.random.default_rng(5)
    jitter = rng.integers(-8, 9, size=bottom[..., :3].shape)
    bottom[..., :3] = np.clip(bottom[..., :3].astype(np.int16) + jitter, 0, 255).astype(np.uint8)

    result = find_overlap(top, bottom)
    assert result.offset_pixels == 80
    assert result.confidence_percent >= 90


def test_unrelated_frames_fall_back_to_minimal_overlap():
    top = noise_canvas(400, seed=1)
    bottom = noise_canvas(400, seed=2)

    result = find_overlap(top, bottom)

    assert result.offset_pixels == 20
    assert result.confidence_percent < 50


def test_ambiguous_match_prefers_smallest_overlap():
    top = uniform_frame(300, 100, 255)
    bottom = uniform_frame(300, 100, 255)

    assert find_overlap(top, bottom) == OverlapResult(20, 100)


def test_too_small_frames_are_stacked():
    assert find_overlap(uniform_frame(10, 50, 0), uniform_frame(10, 50, 0)) == OverlapResult(0, 0)


def test_candidate_range_and_step():
    frames = scroll_pair(overlap=50, height=200)
    candidates = scan_candidates(frames[1], frames[2])

    overlaps = [c[0] for c in candidates]
    assert overlaps[0] == 20
    assert overlaps[-1] == 140
    assert all(b - a == 2 for a, b in zip(overlaps, overlaps[1:]))


def test_search_height_is_capped():
    cfg = ScrollCaptureConfig(overlap_search_cap=100)
    _, top, bottom = scroll_pair(overlap=60, height=300)

    candidates = scan_candidates(top, bottom, cfg)
    assert candidates[-1][0] == 70
    assert find_overlap(top, bottom, cfg).offset_pixels == 60
