"""TensorRTエンジンビルダーモジュール.

ONNXモデルから単一入力・単一出力のTensorRTエンジンを生成する.
指定した出力テンソルをネットワーク出力として登録し,
バッチ次元 1..max_batch_size の Optimization Profile を設定する.
"""

import logging
from pathlib import Path
from typing import Any, Callable, Optional, Tuple

from trtpredict.config import PredictorConfig
from trtpredict.engine.tensorrt_engine import (
    TensorRTEngine,
    create_log_bridge,
    import_tensorrt,
)
from trtpredict.errors import EngineBuildError
from trtpredict.logging import LoggerManager

logger: logging.Logger = LoggerManager().get_logger(__name__)


def batch_profile_shapes(
    shape: Tuple[int, ...], max_batch_size: int
) -> Tuple[Tuple[int, ...], Tuple[int, ...], Tuple[int, ...]]:
    """Optimization Profile 用の (min, opt, max) 形状を返す.

    バッチ次元のみ動的次元として扱う. 空間次元に動的次元 (-1) があれば
    解決できないため EngineBuildError とする.

    Args:
        shape: ネットワーク入力の形状 (先頭がバッチ次元)
        max_batch_size: 最大バッチサイズ

    Returns:
        (min_shape, opt_shape, max_shape)

    Raises:
        EngineBuildError: バッチ次元以外に動的次元がある場合
    """
    rest = tuple(shape[1:])
    if any(d == -1 for d in rest):
        raise EngineBuildError(
            "バッチ次元以外の動的次元はサポートしていません", {"shape": tuple(shape)}
        )
    max_shape = (max_batch_size, *rest)
    return (1, *rest), max_shape, max_shape


class TensorRTEngineBuilder:
    """ONNXモデルをTensorRTエンジンに変換するクラス.

    Attributes:
        config: ワークスペースサイズ・精度・最大バッチサイズを含む設定
    """

    def __init__(
        self,
        config: Optional[PredictorConfig] = None,
        log_callback: Optional[Callable[[int, str], None]] = None,
    ) -> None:
        """ビルダーを初期化.

        Args:
            config: 推論設定. 省略時はデフォルト設定
            log_callback: TensorRT のログを受け取る (logging レベル, メッセージ) の関数.
                省略時はパッケージのロガーへ出力する.

        Raises:
            ImportError: TensorRTがインストールされていない場合
        """
        self._trt = import_tensorrt()
        self.config = config or PredictorConfig()
        self._trt_logger = create_log_bridge(
            self._trt, self.config.trt_log_severity, emit=log_callback
        )

    def _find_tensor(self, network: Any, name: str) -> Any:
        """ネットワーク内の出力テンソルを名前で探す. 見つからなければNone."""
        for i in range(network.num_outputs):
            tensor = network.get_output(i)
            if tensor.name == name:
                return tensor
        for i in range(network.num_layers):
            layer = network.get_layer(i)
            for j in range(layer.num_outputs):
                tensor = layer.get_output(j)
                if tensor.name == name:
                    return tensor
        return None

    def _mark_output(self, network: Any, output_name: str) -> None:
        """``output_name`` だけがネットワーク出力になるよう登録し直す."""
        tensor = self._find_tensor(network, output_name)
        if tensor is None:
            raise EngineBuildError(
                "出力テンソルが見つかりません", {"output_name": output_name}
            )

        for i in reversed(range(network.num_outputs)):
            existing = network.get_output(i)
            if existing.name != output_name:
                network.unmark_output(existing)
        if not tensor.is_network_output:
            network.mark_output(tensor)

    def build_serialized(self, onnx_path: Path, output_name: str) -> bytes:
        """ONNXモデルからシリアライズ済みエンジンを生成する.

        Args:
            onnx_path: ONNXモデルファイルパス
            output_name: ネットワーク出力とするテンソル名

        Returns:
            シリアライズ済みエンジン

        Raises:
            EngineBuildError: ファイルが存在しない, パース・ビルドに失敗した場合
        """
        trt = self._trt
        onnx_path = Path(onnx_path)
        if not onnx_path.exists():
            raise EngineBuildError(f"ONNXモデルが見つかりません: {onnx_path}")

        logger.info(f"TensorRTエンジンを生成中... (精度: {self.config.precision.upper()})")

        builder = trt.Builder(self._trt_logger)
        network = builder.create_network(
            1 << int(trt.NetworkDefinitionCreationFlag.EXPLICIT_BATCH)
        )

        parser = trt.OnnxParser(network, self._trt_logger)
        if not parser.parse_from_file(str(onnx_path)):
            errors = [str(parser.get_error(i)) for i in range(parser.num_errors)]
            raise EngineBuildError(f"ONNXパースエラー: {'; '.join(errors)}")

        self._mark_output(network, output_name)
        logger.debug(
            f"ONNXパース完了: 入力数={network.num_inputs}, 出力数={network.num_outputs}"
        )

        builder_config = builder.create_builder_config()
        builder_config.set_memory_pool_limit(
            trt.MemoryPoolType.WORKSPACE, self.config.workspace_size
        )

        profile = builder.create_optimization_profile()
        has_dynamic = False
        for i in range(network.num_inputs):
            inp = network.get_input(i)
            shape = tuple(inp.shape)
            if shape and shape[0] == -1:
                has_dynamic = True
                shapes = batch_profile_shapes(shape, self.config.max_batch_size)
                profile.set_shape(inp.name, *shapes)
                logger.debug(f"動的バッチ入力: {inp.name}, {shape} -> max={shapes[2]}")
            elif any(d == -1 for d in shape):
                raise EngineBuildError(
                    "バッチ次元以外の動的次元はサポートしていません", {"shape": shape}
                )
        if has_dynamic:
            builder_config.add_optimization_profile(profile)

        if self.config.precision == "fp16":
            builder_config.set_flag(trt.BuilderFlag.FP16)
            logger.debug("FP16モードを有効化")

        logger.info("エンジンをビルド中 (数分かかる場合があります)...")
        serialized = builder.build_serialized_network(network, builder_config)
        if serialized is None:
            raise EngineBuildError("TensorRTエンジンのビルドに失敗しました")
        return bytes(serialized)

    def build(self, onnx_path: Path, output_name: str) -> TensorRTEngine:
        """ONNXモデルからエンジンを生成してデシリアライズする."""
        serialized = self.build_serialized(onnx_path, output_name)
        runtime = self._trt.Runtime(self._trt_logger)
        engine = runtime.deserialize_cuda_engine(serialized)
        if engine is None:
            raise EngineBuildError("ビルドしたエンジンの読み込みに失敗しました")
        return TensorRTEngine(engine)

    def build_to_file(self, onnx_path: Path, output_name: str, output_path: Path) -> Path:
        """エンジンを生成してファイルに保存する.

        Returns:
            保存したエンジンファイルパス
        """
        serialized = self.build_serialized(onnx_path, output_name)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(serialized)

        file_size_mb = output_path.stat().st_size / (1024 * 1024)
        logger.info(f"TensorRTエンジン生成完了: {output_path} ({file_size_mb:.2f} MB)")
        return output_path
