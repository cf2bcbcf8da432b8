"""Command-line argument parsing."""

import argparse
from typing import Optional, Sequence


def parse_arguments(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """コマンドライン引数をパースする

    Args:
        argv: 引数リスト（省略時は sys.argv）

    Returns:
        パース済み引数
    """
    parser = argparse.ArgumentParser(description="チェスボードによる単眼カメラキャリブレーションツール")

    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="設定ファイルのパス（デフォルト: config.yaml）",
    )

    parser.add_argument("--debug", action="store_true", help="デバッグモードで実行（詳細ログ、スナップショット保存）")

    parser.add_argument(
        "--source",
        choices=["camera", "files"],
        help="キャリブレーション画像の取得元（設定ファイルの camera.source を上書き）",
    )

    parser.add_argument("--image-dir", type=str, help="連番画像（left1.bmp ...）のディレクトリ")

    parser.add_argument(
        "--load-corners",
        action="store_true",
        help="保存済みの対応点ファイルを使用し、コーナー蓄積を省略する",
    )

    parser.add_argument(
        "--rectify",
        type=str,
        metavar="PARAM_FILE",
        help="キャリブレーションを行わず、パラメータファイルを読み込んで補正映像を表示する",
    )

    parser.add_argument("--no-display", action="store_true", help="ウィンドウを表示せずに実行")

    parser.add_argument("--output-dir", type=str, help="出力ディレクトリ（設定ファイルの output.directory を上書き）")

    return parser.parse_args(argv)
