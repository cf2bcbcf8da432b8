"""Configuration management module for the camera calibration tool."""

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from camcalib.core.exceptions import ConfigurationInvalid
from camcalib.models.data_models import PatternGeometry

logger = logging.getLogger(__name__)


class ConfigManager:
    """設定ファイル管理クラス

    YAML/JSON形式の設定ファイルを読み込み、検証し、設定値を提供する。

    Attributes:
        config_path: 設定ファイルのパス
        config: 読み込まれた設定データ
    """

    # 必須項目の定義
    REQUIRED_KEYS = {
        "pattern": ["columns", "rows", "square_size"],
        "session": ["image_count"],
        "camera": ["source"],
        "storage": ["corners_path", "parameters_path"],
        "output": ["directory"],
    }

    # デフォルト設定値
    DEFAULT_CONFIG = {
        "pattern": {
            "columns": 12,
            "rows": 8,
            "square_size": 20.0,
        },
        "session": {
            "image_count": 20,
            "debounce_frames": 6,
            "capture_pause_seconds": 1.0,
            "max_failures_per_slot": None,
            "draw_overlay": True,
        },
        "solver": {
            "max_iterations": 100,
            "epsilon": 1e-5,
            "min_images": 3,
        },
        "camera": {
            "source": "camera",
            "device_index": 0,
            "width": 640,
            "height": 480,
            "image_directory": ".",
            "image_template": "left{n}.bmp",
        },
        "storage": {
            "corners_path": "DataCorners.xml",
            "parameters_path": "Intrinsic.xml",
        },
        "output": {
            "directory": "output",
            "save_snapshots": False,
        },
    }

    SOURCES = ("camera", "files")

    def __init__(self, config_path: str = "config.yaml"):
        """ConfigManagerを初期化する

        Args:
            config_path: 設定ファイルのパス（デフォルト: config.yaml）
        """
        self.config_path = config_path
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """設定ファイルを読み込む

        Returns:
            読み込まれた設定データ（デフォルト設定に上書きマージしたもの）

        Raises:
            ValueError: 設定ファイルの形式が不正な場合
        """
        if not os.path.exists(self.config_path):
            logger.warning(f"設定ファイル '{self.config_path}' が見つかりません。デフォルト設定を使用します。")
            return copy.deepcopy(self.DEFAULT_CONFIG)

        file_ext = Path(self.config_path).suffix.lower()
        if file_ext not in [".yaml", ".yml", ".json"]:
            raise ValueError(f"サポートされていないファイル形式: {file_ext}")

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                if file_ext == ".json":
                    config = json.load(f)
                else:
                    config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"YAML解析エラー: {e}") from e
        except json.JSONDecodeError as e:
            raise ValueError(f"JSON解析エラー: {e}") from e

        if config is None:
            logger.warning("設定ファイルが空です。デフォルト設定を使用します。")
            return copy.deepcopy(self.DEFAULT_CONFIG)

        if not isinstance(config, dict):
            raise ValueError("設定ファイルは辞書形式である必要があります")

        logger.info(f"設定ファイル '{self.config_path}' を読み込みました。")
        return self._merge_defaults(config)

    def _merge_defaults(self, config: Dict[str, Any]) -> Dict[str, Any]:
        merged = copy.deepcopy(self.DEFAULT_CONFIG)
        for section, values in config.items():
            if isinstance(values, dict) and isinstance(merged.get(section), dict):
                merged[section].update(values)
            else:
                merged[section] = values
        return merged

    def validate(self) -> bool:
        """設定値の妥当性を検証する

        Returns:
            検証が成功した場合True

        Raises:
            ConfigurationInvalid: 設定値が不正な場合
        """
        for section, required_keys in self.REQUIRED_KEYS.items():
            section_config = self.config.get(section)
            if not isinstance(section_config, dict):
                raise ConfigurationInvalid(f"セクション '{section}' は辞書型である必要があります。")
            for key in required_keys:
                if section_config.get(key) is None:
                    raise ConfigurationInvalid(f"必須項目 '{section}.{key}' が設定ファイルに存在しません。")

        self._validate_pattern_config()
        self._validate_session_config()
        self._validate_solver_config()
        self._validate_camera_config()
        self._validate_storage_config()

        logger.info("設定ファイルの検証が完了しました。")
        return True

    @staticmethod
    def _is_positive_int(value: Any) -> bool:
        return isinstance(value, int) and not isinstance(value, bool) and value > 0

    @staticmethod
    def _is_number(value: Any) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool)

    def _validate_pattern_config(self):
        """pattern セクションの検証"""
        self.build_pattern()

    def _validate_session_config(self):
        """session セクションの検証"""
        session_config = self.config.get("session", {})

        if not self._is_positive_int(session_config.get("image_count")):
            raise ConfigurationInvalid("session.image_count は正の整数である必要があります。")

        debounce = session_config.get("debounce_frames", 6)
        if not isinstance(debounce, int) or isinstance(debounce, bool) or debounce < 0:
            raise ConfigurationInvalid("session.debounce_frames は非負の整数である必要があります。")

        pause = session_config.get("capture_pause_seconds", 1.0)
        if not self._is_number(pause) or pause < 0:
            raise ConfigurationInvalid("session.capture_pause_seconds は非負の数値である必要があります。")

        max_failures = session_config.get("max_failures_per_slot")
        if max_failures is not None and not self._is_positive_int(max_failures):
            raise ConfigurationInvalid("session.max_failures_per_slot は正の整数である必要があります。")

    def _validate_solver_config(self):
        """solver セクションの検証"""
        solver_config = self.config.get("solver", {})

        if not self._is_positive_int(solver_config.get("max_iterations", 100)):
            raise ConfigurationInvalid("solver.max_iterations は正の整数である必要があります。")

        epsilon = solver_config.get("epsilon", 1e-5)
        if not self._is_number(epsilon) or epsilon <= 0:
            raise ConfigurationInvalid("solver.epsilon は正の数値である必要があります。")

        if not self._is_positive_int(solver_config.get("min_images", 3)):
            raise ConfigurationInvalid("solver.min_images は正の整数である必要があります。")

    def _validate_camera_config(self):
        """camera セクションの検証"""
        camera_config = self.config.get("camera", {})

        if camera_config.get("source") not in self.SOURCES:
            raise ConfigurationInvalid("camera.source は 'camera', 'files' のいずれかである必要があります。")

        for key in ["width", "height"]:
            if not self._is_positive_int(camera_config.get(key)):
                raise ConfigurationInvalid(f"camera.{key} は正の整数である必要があります。")

        device_index = camera_config.get("device_index", 0)
        if not isinstance(device_index, int) or isinstance(device_index, bool) or device_index < 0:
            raise ConfigurationInvalid("camera.device_index は非負の整数である必要があります。")

        template = camera_config.get("image_template", "left{n}.bmp")
        if not isinstance(template, str) or "{n}" not in template:
            raise ConfigurationInvalid("camera.image_template は '{n}' を含む文字列である必要があります。")

    def _validate_storage_config(self):
        """storage / output セクションの検証"""
        for key in ["storage.corners_path", "storage.parameters_path", "output.directory"]:
            if not isinstance(self.get(key), str):
                raise ConfigurationInvalid(f"{key} は文字列である必要があります。")

    def build_pattern(self) -> PatternGeometry:
        """pattern セクションからパターン幾何情報を生成する

        Raises:
            ConfigurationInvalid: 値が欠落している、または数値でない場合
        """
        pattern_config = self.get_section("pattern")
        return PatternGeometry(
            columns=pattern_config.get("columns"),
            rows=pattern_config.get("rows"),
            square_size=pattern_config.get("square_size"),
        )

    def image_size(self) -> tuple:
        """カメラ解像度 (width, height)"""
        return (self.get("camera.width"), self.get("camera.height"))

    def get(self, key: str, default: Any = None) -> Any:
        """設定値を取得する

        ドット記法（例: 'pattern.columns'）で階層的な設定値にアクセスできる。

        Args:
            key: 設定キー（ドット記法をサポート）
            default: キーが存在しない場合のデフォルト値

        Returns:
            設定値、またはデフォルト値
        """
        keys = key.split(".")
        value = self.config

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """設定セクション全体を取得する"""
        return self.config.get(section, {})

    def set(self, key: str, value: Any):
        """設定値を動的に変更する

        Args:
            key: 設定キー（ドット記法をサポート）
            value: 設定する値
        """
        keys = key.split(".")
        config = self.config

        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value
        logger.debug(f"設定値を変更しました: {key} = {value}")

    def save(self, output_path: Optional[str] = None):
        """設定をファイルに保存する

        Args:
            output_path: 保存先パス（指定しない場合は元のパスに上書き）
        """
        save_path = output_path or self.config_path
        file_ext = Path(save_path).suffix.lower()

        try:
            with open(save_path, "w", encoding="utf-8") as f:
                if file_ext in [".yaml", ".yml"]:
                    yaml.dump(self.config, f, default_flow_style=False, allow_unicode=True)
                elif file_ext == ".json":
                    json.dump(self.config, f, indent=2, ensure_ascii=False)
                else:
                    raise ValueError(f"サポートされていないファイル形式: {file_ext}")

            logger.info(f"設定ファイルを保存しました: {save_path}")
        except Exception as e:
            logger.error(f"設定ファイルの保存に失敗しました: {e}")
            raise
