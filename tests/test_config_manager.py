"""Unit tests for ConfigManager."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from camcalib.config import ConfigManager
from camcalib.core.exceptions import ConfigurationInvalid

if TYPE_CHECKING:
    from pathlib import Path


def test_init_with_default_config():
    """存在しない設定ファイルパスで初期化するとデフォルト設定が使用される。"""

    config = ConfigManager("nonexistent_config.yaml")
    assert config.get("pattern.columns") == 12
    assert config.get("pattern.rows") == 8
    assert config.get("pattern.square_size") == 20.0
    assert config.get("session.image_count") == 20
    assert config.get("session.debounce_frames") == 6
    assert config.image_size() == (640, 480)
    assert config.validate() is True


def test_default_config_not_shared():
    """デフォルト設定は呼び出しごとに独立している。"""

    first = ConfigManager("nonexistent_config.yaml")
    first.set("pattern.columns", 3)

    assert ConfigManager("nonexistent_config.yaml").get("pattern.columns") == 12


def test_load_yaml_merges_defaults(tmp_path: Path):
    """YAMLで指定した項目以外はデフォルト値で補われる。"""

    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
pattern:
  columns: 9
  rows: 6
session:
  image_count: 15
""",
        encoding="utf-8",
    )

    config = ConfigManager(str(config_path))
    assert config.get("pattern.columns") == 9
    assert config.get("pattern.square_size") == 20.0
    assert config.get("session.image_count") == 15
    assert config.get("session.debounce_frames") == 6
    assert config.build_pattern().n_points == 54


def test_load_json_config(tmp_path: Path):
    """JSON設定ファイルを正しく読み込める。"""

    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"camera": {"source": "files", "image_directory": "captures"}}), encoding="utf-8")

    config = ConfigManager(str(config_path))
    assert config.get("camera.source") == "files"
    assert config.get("camera.image_directory") == "captures"
    assert config.validate() is True


def test_empty_file_uses_defaults(tmp_path: Path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("", encoding="utf-8")

    assert ConfigManager(str(config_path)).get("session.image_count") == 20


def test_unsupported_extension(tmp_path: Path):
    config_path = tmp_path / "config.toml"
    config_path.write_text("a = 1", encoding="utf-8")

    with pytest.raises(ValueError, match="サポートされていない"):
        ConfigManager(str(config_path))


def test_invalid_yaml(tmp_path: Path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("pattern: [unclosed", encoding="utf-8")

    with pytest.raises(ValueError, match="YAML"):
        ConfigManager(str(config_path))


@pytest.mark.parametrize(
    "key,value",
    [
        ("pattern.columns", 0),
        ("pattern.rows", -2),
        ("pattern.square_size", 0),
        ("pattern.square_size", "20mm"),
        ("session.image_count", 0),
        ("session.image_count", 2.5),
        ("session.debounce_frames", -1),
        ("session.capture_pause_seconds", -1.0),
        ("session.max_failures_per_slot", 0),
        ("solver.max_iterations", 0),
        ("solver.epsilon", 0),
        ("camera.source", "usb"),
        ("camera.width", 0),
        ("camera.device_index", -1),
        ("camera.image_template", "left.bmp"),
        ("storage.corners_path", 5),
    ],
)
def test_validate_rejects_invalid_values(key: str, value):
    """不正な値は ConfigurationInvalid で拒否する。"""

    config = ConfigManager("nonexistent_config.yaml")
    config.set(key, value)

    with pytest.raises(ConfigurationInvalid):
        config.validate()


def test_validate_missing_required_key():
    config = ConfigManager("nonexistent_config.yaml")
    config.set("pattern.columns", None)

    with pytest.raises(ConfigurationInvalid, match="pattern.columns"):
        config.validate()


def test_validate_section_not_dict():
    config = ConfigManager("nonexistent_config.yaml")
    config.config["session"] = [20]

    with pytest.raises(ConfigurationInvalid, match="session"):
        config.validate()


def test_get_default_for_missing_key():
    config = ConfigManager("nonexistent_config.yaml")
    assert config.get("missing.key", "fallback") == "fallback"
    assert config.get_section("storage")["parameters_path"] == "Intrinsic.xml"


def test_save_and_reload(tmp_path: Path):
    """保存した設定を再読み込みできる。"""

    config = ConfigManager("nonexistent_config.yaml")
    config.set("session.image_count", 12)
    output_path = tmp_path / "saved.yaml"
    config.save(str(output_path))

    assert ConfigManager(str(output_path)).get("session.image_count") == 12


def test_save_unsupported_extension(tmp_path: Path):
    config = ConfigManager("nonexistent_config.yaml")
    with pytest.raises(ValueError):
        config.save(str(tmp_path / "saved.txt"))
