"""Image conversion and saving utilities."""

from __future__ import annotations

import logging
from pathlib import Path

import cv2
import numpy as np


def to_gray(frame: np.ndarray) -> np.ndarray:
    """フレームを8bitグレースケールに変換する

    Args:
        frame: (H, W) または (H, W, 3) / (H, W, 4) の画像

    Returns:
        (H, W) uint8 のグレースケール画像

    Raises:
        ValueError: 対応していない形状の場合
    """
    if frame.ndim == 2:
        gray = frame
    elif frame.ndim == 3 and frame.shape[2] == 3:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
    elif frame.ndim == 3 and frame.shape[2] == 4:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGRA2GRAY)
    elif frame.ndim == 3 and frame.shape[2] == 1:
        gray = frame[:, :, 0]
    else:
        raise ValueError(f"対応していない画像形状です: {frame.shape}")

    if gray.dtype != np.uint8:
        gray = cv2.convertScaleAbs(gray)
    return gray


def negative_image(gray: np.ndarray) -> np.ndarray:
    """ネガ画像を生成（スロット確定時のフラッシュ表示用）"""
    return 255 - to_gray(gray)


def draw_status_text(image: np.ndarray, text: str) -> np.ndarray:
    """左上にステータス文字列を描画した画像を返す"""
    canvas = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR) if image.ndim == 2 else image.copy()
    cv2.putText(canvas, text, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 0, 0), 3)
    cv2.putText(canvas, text, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 255, 0), 1)
    return canvas


def save_snapshot_image(
    image: np.ndarray,
    slot: int,
    output_dir: Path,
    logger: logging.Logger,
) -> Path | None:
    """確定したスロットの画像を保存

    Args:
        image: 保存する画像
        slot: スロット番号（1始まり）
        output_dir: 出力ディレクトリ
        logger: ロガー

    Returns:
        保存先パス。失敗した場合None
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / f"snapshot_{slot:03d}.png"

    if cv2.imwrite(str(output_path), image):
        logger.debug(f"スナップショットを保存しました: {output_path}")
        return output_path

    logger.error(f"スナップショットの保存に失敗しました: {output_path}")
    return None
