"""TensorRT エンジンアダプタ.

tensorrt.ICudaEngine (TensorRT 10 のテンソル名ベースAPI) を
ExecutionEngine Protocol に適合させる. tensorrt は遅延インポートする.
"""

import logging
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple

from trtpredict.config import PredictorConfig
from trtpredict.engine.protocol import LayerProfiler
from trtpredict.errors import EngineBuildError, ExecutionError
from trtpredict.logging import LoggerManager

logger: logging.Logger = LoggerManager().get_logger(__name__)


def check_tensorrt_availability() -> bool:
    """TensorRTの利用可否をチェック.

    Returns:
        TensorRTが利用可能な場合True
    """
    try:
        import tensorrt as trt  # noqa: F401

        return True
    except ImportError:
        return False


def import_tensorrt() -> Any:
    """tensorrt モジュールを返す.

    Raises:
        ImportError: TensorRTがインストールされていない場合
    """
    if not check_tensorrt_availability():
        raise ImportError(
            "TensorRTがインストールされていません. "
            "TensorRT SDKをインストールしてください."
        )
    import tensorrt as trt

    return trt


def create_log_bridge(
    trt: Any,
    severity: str = "WARNING",
    emit: Optional[Callable[[int, str], None]] = None,
) -> Any:
    """TensorRT のログをパッケージのロガーへ転送する ILogger を作成する.

    INFO / VERBOSE は DEBUG に落とし, それ以外をそれぞれのレベルで出力する.
    TensorRT 側の閾値は ``severity`` で指定する.

    Args:
        trt: tensorrt モジュール
        severity: TensorRT に渡す最小重要度 ("ERROR", "WARNING", "INFO", "VERBOSE")
        emit: (logging レベル, メッセージ) を受け取る出力先. 省略時はパッケージのロガー

    Returns:
        trt.ILogger のサブクラスインスタンス
    """
    level_map = {
        trt.ILogger.INTERNAL_ERROR: logging.CRITICAL,
        trt.ILogger.ERROR: logging.ERROR,
        trt.ILogger.WARNING: logging.WARNING,
        trt.ILogger.INFO: logging.DEBUG,
        trt.ILogger.VERBOSE: logging.DEBUG,
    }
    min_severity = getattr(trt.ILogger, severity)
    sink = emit or logger.log

    class TensorRTLogBridge(trt.ILogger):  # type: ignore[misc, name-defined]
        def __init__(self) -> None:
            trt.ILogger.__init__(self)
            self.min_severity = min_severity

        def log(self, sev: Any, msg: str) -> None:
            sink(level_map.get(sev, logging.WARNING), f"[TensorRT] {msg}")

    return TensorRTLogBridge()


def create_layer_profiler(trt: Any, sink: LayerProfiler) -> Any:
    """``sink`` へレイヤー時間を転送する trt.IProfiler を作成する.

    Args:
        trt: tensorrt モジュール
        sink: report_layer_time を持つ転送先

    Returns:
        trt.IProfiler のサブクラスインスタンス
    """

    class ForwardingProfiler(trt.IProfiler):  # type: ignore[misc, name-defined]
        def __init__(self) -> None:
            trt.IProfiler.__init__(self)

        def report_layer_time(self, layer_name: str, ms: float) -> None:
            sink.report_layer_time(layer_name, ms)

    return ForwardingProfiler()


class TensorRTExecutionContext:
    """trt.IExecutionContext を ExecutionContext Protocol に適合させるラッパー."""

    def __init__(self, trt: Any, engine: Any, context: Any) -> None:
        self._trt = trt
        self._engine = engine
        self._context = context
        # trt 側は参照を保持しないため, 実行が終わるまでこちらで保持する
        self._profiler: Any = None

    def set_profiler(self, profiler: Optional[LayerProfiler]) -> None:
        if profiler is None:
            return
        self._profiler = create_layer_profiler(self._trt, profiler)
        self._context.profiler = self._profiler

    def execute(self, batch_size: int, bindings: List[int]) -> bool:
        for index in range(self._engine.num_io_tensors):
            name = self._engine.get_tensor_name(index)
            if self._engine.get_tensor_mode(name) != self._trt.TensorIOMode.INPUT:
                continue
            shape = tuple(self._engine.get_tensor_shape(name))
            if not self._context.set_input_shape(name, (batch_size, *shape[1:])):
                logger.error(f"入力形状を設定できません: {name}, batch={batch_size}")
                return False
        return bool(self._context.execute_v2(bindings))

    def release(self) -> None:
        self._profiler = None
        self._context = None


class TensorRTEngine:
    """tensorrt.ICudaEngine を ExecutionEngine Protocol に適合させるラッパー.

    Attributes:
        engine: 元の ICudaEngine
    """

    def __init__(self, engine: Any) -> None:
        """ラッパーを初期化.

        Args:
            engine: デシリアライズ済みの ICudaEngine
        """
        self._trt = import_tensorrt()
        self.engine = engine

    @property
    def num_bindings(self) -> int:
        return int(self.engine.num_io_tensors)

    def get_binding_index(self, name: str) -> int:
        for index in range(self.engine.num_io_tensors):
            if self.engine.get_tensor_name(index) == name:
                return index
        return -1

    def get_binding_shape(self, index: int) -> Tuple[int, ...]:
        return tuple(self.engine.get_tensor_shape(self.engine.get_tensor_name(index)))

    def create_execution_context(self) -> TensorRTExecutionContext:
        context = self.engine.create_execution_context()
        if context is None:
            raise ExecutionError("実行コンテキストの作成に失敗しました")
        return TensorRTExecutionContext(self._trt, self.engine, context)

    def release(self) -> None:
        self.engine = None


def load_engine(
    engine_path: Path, config: Optional[PredictorConfig] = None
) -> TensorRTEngine:
    """シリアライズ済みエンジンファイルを読み込む.

    Args:
        engine_path: TensorRTエンジンファイルパス (.engine)
        config: 推論設定. TensorRT のログ閾値に使用する.

    Returns:
        読み込んだエンジン

    Raises:
        ImportError: TensorRTがインストールされていない場合
        EngineBuildError: ファイルが存在しない, またはデシリアライズに失敗した場合
    """
    trt = import_tensorrt()
    config = config or PredictorConfig()

    engine_path = Path(engine_path)
    if not engine_path.exists():
        raise EngineBuildError(f"エンジンファイルが見つかりません: {engine_path}")

    runtime = trt.Runtime(create_log_bridge(trt, config.trt_log_severity))
    engine = runtime.deserialize_cuda_engine(engine_path.read_bytes())
    if engine is None:
        raise EngineBuildError(f"エンジンの読み込みに失敗しました: {engine_path}")

    logger.debug(f"TensorRTエンジンを読み込み: {engine_path}")
    return TensorRTEngine(engine)
