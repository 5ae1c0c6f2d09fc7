#!/usr/bin/env python3
"""trtpredict 統一CLI.

使用例:
    trtpredict predict model.engine --input images.npy \\
        --input-name data --output-name prob
    trtpredict build model.onnx --output-name prob --max-batch-size 8
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np
from pydantic import ValidationError

from trtpredict.cli.arg_types import existing_file, positive_int
from trtpredict.config import PredictorConfig, load_predictor_config
from trtpredict.errors import EngineBuildError
from trtpredict.logging import LoggerManager, LogLevel
from trtpredict.predictor import create_from_engine_file, destroy
from trtpredict.utils import write_json_file, write_json_text

logger: logging.Logger = LoggerManager().get_logger(__name__)


def _load_config(config_path: Optional[Path]) -> Optional[PredictorConfig]:
    """設定ファイルを読み込む. 失敗した場合はログを出してNoneを返す."""
    try:
        return load_predictor_config(config_path)
    except FileNotFoundError as e:
        logger.error(str(e))
    except RuntimeError as e:
        logger.error(str(e))
    except ValidationError as e:
        logger.error(f"設定値が不正です: {e}")
    return None


def infer_batch_size(input_data: np.ndarray) -> int:
    """入力配列からバッチサイズを推定する. 4次元 (N,C,H,W) なら N, それ以外は1."""
    if input_data.ndim == 4:
        return int(input_data.shape[0])
    return 1


def predict_command(args: argparse.Namespace) -> int:
    """エンジンで1バッチ推論し, 結果JSONを出力する.

    Returns:
        終了コード
    """
    config = _load_config(args.config)
    if config is None:
        return 1

    try:
        input_data = np.load(args.input)
    except (OSError, ValueError) as e:
        logger.error(f"入力ファイルを読み込めません: {args.input}: {e}")
        return 1
    batch_size = args.batch_size or infer_batch_size(input_data)
    logger.debug(f"入力: {args.input}, shape={input_data.shape}, batch_size={batch_size}")

    handle = create_from_engine_file(args.engine_path, config=config)
    if handle is None:
        return 1

    try:
        if args.profile is not None:
            handle.start_profiling(
                args.profile or config.default_profile_name, args.profile_metadata
            )

        result = handle.execute(input_data, args.input_name, args.output_name, batch_size)

        if args.profile is not None:
            handle.end_profiling()

        if not result.ok:
            return 1
        assert result.payload is not None

        if args.output:
            write_json_text(Path(args.output), result.payload)
            logger.info(f"推論結果を保存: {args.output}")
        else:
            print(result.payload)

        if args.profile_output and handle.profile is not None:
            write_json_file(Path(args.profile_output), handle.profile.to_dict())
            logger.info(f"プロファイルを保存: {args.profile_output}")
    finally:
        destroy(handle)

    return 0


def build_command(args: argparse.Namespace) -> int:
    """ONNXモデルからエンジンを生成する.

    Returns:
        終了コード
    """
    config = _load_config(args.config)
    if config is None:
        return 1

    overrides = {}
    if args.max_batch_size is not None:
        overrides["max_batch_size"] = args.max_batch_size
    if args.workspace_size is not None:
        overrides["workspace_size"] = args.workspace_size
    if args.fp16:
        overrides["precision"] = "fp16"
    config = config.model_copy(update=overrides)

    onnx_path = Path(args.onnx_path)
    output_path = Path(args.output) if args.output else onnx_path.with_suffix(".engine")

    try:
        from trtpredict.engine.builder import TensorRTEngineBuilder

        builder = TensorRTEngineBuilder(config)
        builder.build_to_file(onnx_path, args.output_name, output_path)
    except (ImportError, EngineBuildError) as e:
        logger.error(f"TensorRT変換エラー: {e}")
        return 1

    logger.info("推論するには:")
    logger.info(f"  trtpredict predict {output_path} --input INPUT.npy ...")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """引数パーサーを作成する."""
    parser = argparse.ArgumentParser(
        description="trtpredict - TensorRTエンジンの推論・プロファイリング",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
使用例:
  推論
  trtpredict predict model.engine --input batch.npy
    --input-name data --output-name prob

  推論 + レイヤープロファイル
  trtpredict predict model.engine --input batch.npy
    --input-name data --output-name prob
    --profile run1 --profile-output profile.json

  エンジン生成
  trtpredict build model.onnx --output-name prob --max-batch-size 8 --fp16
        """,
    )
    parser.add_argument("--debug", action="store_true", help="DEBUGログを有効化")

    subparsers = parser.add_subparsers(dest="command", help="サブコマンド")

    predict_parser = subparsers.add_parser("predict", help="エンジンで推論")
    predict_parser.add_argument(
        "engine_path", type=existing_file, help="TensorRTエンジンファイルパス (.engine)"
    )
    predict_parser.add_argument(
        "--input", "-i", type=existing_file, required=True, help="入力 .npy ファイル"
    )
    predict_parser.add_argument("--input-name", required=True, help="入力テンソル名")
    predict_parser.add_argument("--output-name", required=True, help="出力テンソル名")
    predict_parser.add_argument(
        "--batch-size",
        "-b",
        type=positive_int,
        help="バッチサイズ（省略時は入力配列の先頭次元, 4次元でなければ1）",
    )
    predict_parser.add_argument(
        "--profile",
        nargs="?",
        const="",
        default=None,
        metavar="NAME",
        help="レイヤー単位のプロファイリングを有効化（NAME省略時はconfigの名前）",
    )
    predict_parser.add_argument(
        "--profile-metadata", default="", help="プロファイルに付与するメタデータ"
    )
    predict_parser.add_argument(
        "--profile-output", help="プロファイルJSONの出力先（--profile指定時のみ有効）"
    )
    predict_parser.add_argument("--output", "-o", help="結果JSONの出力先（省略時は標準出力）")
    predict_parser.add_argument("--config", "-c", type=existing_file, help="設定ファイルパス")

    build_parser_ = subparsers.add_parser("build", help="ONNXモデルをTensorRTエンジンに変換")
    build_parser_.add_argument("onnx_path", help="ONNXモデルファイルパス (.onnx)")
    build_parser_.add_argument("--output-name", required=True, help="出力テンソル名")
    build_parser_.add_argument(
        "--max-batch-size", type=positive_int, help="最大バッチサイズ（省略時はconfigの値）"
    )
    build_parser_.add_argument(
        "--workspace-size", type=positive_int, help="TensorRTワークスペースサイズ (bytes)"
    )
    build_parser_.add_argument("--fp16", action="store_true", help="FP16精度で変換")
    build_parser_.add_argument(
        "--output", "-o", help="出力エンジンファイルパス (default: 入力と同じ場所に.engine)"
    )
    build_parser_.add_argument("--config", "-c", type=existing_file, help="設定ファイルパス")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """メイン関数."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.debug:
        LoggerManager().set_all_levels(LogLevel.DEBUG)

    if args.command == "predict":
        sys.exit(predict_command(args))
    if args.command == "build":
        sys.exit(build_command(args))

    parser.print_help()
    sys.exit(1)


if __name__ == "__main__":
    main()
