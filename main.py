#!/usr/bin/env python
"""
カメラキャリブレーションツール - メインエントリーポイント

チェスボードの内部コーナーを複数フレームにわたって蓄積し、
カメラの内部パラメータと歪み係数を推定して、歪み補正したライブ映像を表示します。
"""

import logging
from pathlib import Path
from queue import Empty
import sys
import time

import cv2
from tqdm import tqdm

from camcalib.calibration import CalibrationPhase, CalibrationState, CameraCalibrator, CornerDetector
from camcalib.cli import parse_arguments
from camcalib.config import ConfigManager
from camcalib.core.exceptions import ConfigurationInvalid, DeviceUnavailable, StoreFormatError
from camcalib.models import TerminationCriteria
from camcalib.pipeline import CalibrationWorker, LiveView
from camcalib.storage import CornerStore, ParameterStore
from camcalib.utils import draw_status_text, save_snapshot_image, setup_logging
from camcalib.video import CameraFrameSource, ImageSequenceFrameSource

WINDOW_NAME = "Camera Calibration"
QUIT_KEYS = (ord("q"), 27)
RESET_KEY = ord("r")


def apply_overrides(config, args) -> None:
    """コマンドライン引数で設定を上書きする"""
    if args.source:
        config.set("camera.source", args.source)
    if args.image_dir:
        config.set("camera.image_directory", args.image_dir)
    if args.output_dir:
        config.set("output.directory", args.output_dir)
    if args.debug:
        config.set("output.save_snapshots", True)


def log_intrinsics(logger: logging.Logger, intrinsics) -> None:
    for name, value in intrinsics.summary().items():
        logger.info(f"  {name}: {value:.6f}")


def run_rectify(config, args, logger: logging.Logger) -> int:
    """パラメータファイルを読み込み、補正したライブ映像を表示する"""
    state = CalibrationState()
    live_view = LiveView(state)

    if args.no_display:
        intrinsics = live_view.load_parameters_and_rectify(args.rectify, config.image_size())
        logger.info(f"パラメータファイルを読み込みました: {args.rectify}")
        log_intrinsics(logger, intrinsics)
        return 0

    with CameraFrameSource(config.get("camera.device_index", 0), *config.image_size()) as camera:
        # リマップテーブルはカメラが実際に返す解像度で生成する
        intrinsics = live_view.load_parameters_and_rectify(args.rectify, camera.frame_size)
        logger.info(f"パラメータファイルを読み込みました: {args.rectify}")
        log_intrinsics(logger, intrinsics)

        while True:
            frame = camera.read()
            if frame is not None:
                cv2.imshow(WINDOW_NAME, live_view.process_frame(frame))

            key = cv2.waitKey(1) & 0xFF
            if key in QUIT_KEYS:
                break
            if key == RESET_KEY:
                if state.phase is CalibrationPhase.RECTIFYING:
                    state.reset()
                else:
                    state.begin_rectifying(state.intrinsics, state.rectification_map)

    return 0


def run_calibration(config, args, logger: logging.Logger) -> int:
    """コーナー蓄積からキャリブレーション、補正表示までを実行する"""
    pattern = config.build_pattern()
    image_size = config.image_size()
    n_images = config.get("session.image_count")
    output_dir = Path(config.get("output.directory"))
    show = not args.no_display

    state = CalibrationState()
    live_view = LiveView(state)
    camera = None
    max_failures = config.get("session.max_failures_per_slot")

    if config.get("camera.source") == "files":
        frames = ImageSequenceFrameSource(
            config.get("camera.image_directory", "."),
            config.get("camera.image_template", ImageSequenceFrameSource.DEFAULT_TEMPLATE),
        )
        # 保存済み画像は再検出しても結果が変わらない
        max_failures = max_failures or 1
    else:
        camera = CameraFrameSource(config.get("camera.device_index", 0), *image_size)
        camera.open()
        # 要求解像度に従わないカメラでは実際の解像度でキャリブレーションする
        image_size = camera.frame_size
        frames = live_view.buffer

    criteria = TerminationCriteria(
        max_iterations=config.get("solver.max_iterations", 100),
        epsilon=config.get("solver.epsilon", 1e-5),
    )
    worker = CalibrationWorker(
        pattern,
        n_images,
        image_size,
        state,
        frames,
        CornerStore(config.get("storage.corners_path")),
        ParameterStore(config.get("storage.parameters_path")),
        use_stored_corners=args.load_corners,
        debounce_frames=config.get("session.debounce_frames", 6),
        capture_pause_seconds=config.get("session.capture_pause_seconds", 1.0),
        max_failures_per_slot=max_failures,
        draw_overlay=config.get("session.draw_overlay", True),
        detector=CornerDetector(pattern, criteria),
        calibrator=CameraCalibrator(criteria, min_images=config.get("solver.min_images", 3)),
    )

    exit_code = 1
    finished = False
    snapshot = None
    snapshot_until = 0.0
    progress = tqdm(total=n_images, desc="コーナー蓄積中", disable=args.load_corners)

    try:
        worker.start()

        while True:
            display = None
            if camera is not None:
                frame = camera.read()
                if frame is not None:
                    display = live_view.process_frame(frame)

            while True:
                try:
                    message = worker.messages.get_nowait()
                except Empty:
                    break

                if message.kind == "progress":
                    accepted, _ = message.payload
                    progress.update(accepted - progress.n)
                elif message.kind == "snapshot":
                    accepted, snapshot = message.payload
                    snapshot_until = time.monotonic() + worker.capture_pause_seconds
                    if config.get("output.save_snapshots", False):
                        save_snapshot_image(snapshot, accepted, output_dir / "snapshots", logger)
                elif message.kind == "result":
                    result = message.payload
                    logger.info(f"キャリブレーションが完了しました: {message.text}")
                    log_intrinsics(logger, result.intrinsics)
                    for i, error in enumerate(result.per_image_errors, start=1):
                        logger.debug(f"  image{i}: {error:.4f}px")
                    exit_code = 0
                elif message.kind == "error":
                    logger.error(f"キャリブレーションに失敗しました: {message.text}")
                    exit_code = 1
                elif message.kind == "cancelled":
                    logger.warning(f"キャリブレーションを中断しました: {message.text}")
                    exit_code = 0
                elif message.kind == "done":
                    finished = True

            if not show:
                if finished:
                    break
                if camera is None:
                    worker.join(0.05)
                continue

            if snapshot is not None and time.monotonic() < snapshot_until:
                display = snapshot
            if display is not None:
                if state.phase is CalibrationPhase.ACCUMULATING:
                    display = draw_status_text(display, f"{worker.n_images} images: {progress.n} captured")
                cv2.imshow(WINDOW_NAME, display)

            key = cv2.waitKey(1) & 0xFF
            if key in QUIT_KEYS:
                if worker.is_alive():
                    worker.cancel()
                else:
                    break
            elif key == RESET_KEY and state.phase is CalibrationPhase.RECTIFYING:
                state.reset()

            if finished and camera is None and (snapshot is None or time.monotonic() >= snapshot_until):
                break
    finally:
        if worker.is_alive():
            worker.cancel()
            worker.join(5.0)
        progress.close()
        if camera is not None:
            camera.release()

    return exit_code


def main(argv=None):
    """メイン処理"""
    args = parse_arguments(argv)

    # 初期ロギング設定（設定ファイル読み込み前）
    setup_logging(args.debug)
    logger = logging.getLogger(__name__)

    logger.info("=" * 80)
    logger.info("カメラキャリブレーションツール 起動")
    logger.info("=" * 80)

    try:
        logger.info(f"設定ファイルを読み込んでいます: {args.config}")
        config = ConfigManager(args.config)
        apply_overrides(config, args)
        config.validate()

        # ロギングを再設定（出力ディレクトリを反映）
        setup_logging(args.debug, config.get("output.directory", "output"))
        logger = logging.getLogger(__name__)

        if args.rectify:
            return run_rectify(config, args, logger)
        return run_calibration(config, args, logger)

    except ConfigurationInvalid as e:
        logger.error(f"設定エラー: {e}")
        return 1
    except DeviceUnavailable as e:
        logger.error(f"カメラエラー: {e}")
        return 1
    except StoreFormatError as e:
        logger.error(f"ファイル形式エラー: {e}")
        return 1
    except FileNotFoundError as e:
        logger.error(f"ファイルが見つかりません: {e}")
        return 1
    except ValueError as e:
        logger.error(f"設定エラー: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("処理が中断されました")
        return 130
    except Exception as e:
        logger.error(f"予期しないエラーが発生しました: {e}", exc_info=True)
        return 1
    finally:
        if not args.no_display:
            cv2.destroyAllWindows()


if __name__ == "__main__":
    sys.exit(main())
