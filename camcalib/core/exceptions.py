"""キャリブレーション処理で使用する例外定義。

検出失敗（チェスボードが見つからない）は頻繁に起こる正常系のため例外ではなく、
`CornerDetector.detect` が None を返すことで表現する。
"""

from __future__ import annotations


class CalibrationError(Exception):
    """キャリブレーション関連例外の基底クラス"""


class DeviceUnavailable(CalibrationError, RuntimeError):
    """カメラデバイスを開けない場合"""


class SolveFailure(CalibrationError, RuntimeError):
    """キャリブレーションソルバーが収束しない、またはデータが不足している場合"""


class StoreFormatError(CalibrationError, ValueError):
    """永続化ファイルの形式・要素数が不正な場合"""


class ConfigurationInvalid(CalibrationError, ValueError):
    """パターンサイズ・画像枚数・マス目サイズが不正な場合"""


class InvalidStateTransition(CalibrationError, RuntimeError):
    """許可されていない状態遷移が要求された場合"""


class InsufficientDetections(CalibrationError, RuntimeError):
    """画像ファイルからコーナーを検出できず、スロットを埋められない場合"""


class CalibrationCancelled(CalibrationError):
    """キャンセル要求により蓄積処理を中断した場合（エラーではない）"""
