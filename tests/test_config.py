import logging

import pytest

from faceoverlay.config import DEFAULTS, load_and_merge, load_yaml, merge_config


def test_defaults_are_not_mutated():
    cfg = merge_config(None, {"alignment": {"anchor_mode": "mouth"}})
    cfg["paths"]["output_dir"] = "elsewhere"
    assert DEFAULTS["alignment"]["anchor_mode"] == "nose"
    assert DEFAULTS["paths"]["output_dir"] == "outputs"


def test_yaml_then_cli_precedence(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text(
        "alignment:\n"
        "  anchor_mode: forehead\n"
        "  overlay_width_fraction: 0.6\n"
        "camera:\n"
        "  mirror: true\n",
        encoding="utf-8",
    )
    cfg = load_and_merge(path, {"alignment": {"anchor_mode": "left_eye"}})
    assert cfg["alignment"]["anchor_mode"] == "left_eye"
    assert cfg["alignment"]["overlay_width_fraction"] == 0.6
    assert cfg["alignment"]["nose_offset_ratio"] == 0.40
    assert cfg["camera"]["mirror"] is True
    assert cfg["camera"]["width"] == 640


def test_missing_yaml_is_ignored(tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        assert load_yaml(tmp_path / "nope.yaml") == {}
    assert "not found" in caplog.text


def test_empty_path_gives_empty_config():
    assert load_yaml(None) == {}


def test_non_mapping_yaml_rejected(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_yaml(path)
