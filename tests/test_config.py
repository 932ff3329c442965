from __future__ import annotations

import json

import pytest

from scrollstitch.config import DEFAULT_CONFIG, ScrollCaptureConfig, load_config, save_config


def test_defaults_match_tuned_thresholds():
    cfg = ScrollCaptureConfig()
    assert cfg.poll_interval_ms == 50
    assert cfg.stabilization_delay == 0.25
    assert cfg.change_threshold == 1
    assert cfg.duplicate_threshold == 1
    assert cfg.blank_frame_limit == 3
    assert cfg.overlap_search_cap == 1200


def test_missing_file_gives_defaults(tmp_path):
    assert load_config(tmp_path / "absent.json") == DEFAULT_CONFIG


def test_known_keys_override_and_unknown_are_dropped(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"poll_interval_ms": 80, "theme": "dark"}), encoding="utf-8")

    cfg = load_config(path)

    assert cfg.poll_interval_ms == 80
    assert cfg.stabilization_delay == DEFAULT_CONFIG.stabilization_delay
    assert not hasattr(cfg, "theme")


@pytest.mark.parametrize(
    "payload",
    ["{not json", json.dumps([1, 2, 3]), json.dumps({"poll_interval_ms": -5}), json.dumps({"margin_ratio": "wide"})],
)
def test_broken_config_falls_back_to_defaults(tmp_path, payload):
    path = tmp_path / "cfg.json"
    path.write_text(payload, encoding="utf-8")

    assert load_config(path) == DEFAULT_CONFIG


def test_save_then_load(tmp_path):
    path = tmp_path / "cfg.json"
    cfg = ScrollCaptureConfig(stabilization_delay=0.4, min_confidence=60)

    save_config(cfg, path)

    assert load_config(path) == cfg


def test_validate_rejects_bad_thresholds():
    with pytest.raises(ValueError):
        ScrollCaptureConfig(duplicate_threshold=65).validate()
    with pytest.raises(ValueError):
        ScrollCaptureConfig(max_overlap_ratio=0).validate()
