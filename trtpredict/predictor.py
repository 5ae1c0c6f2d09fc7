"""推論ハンドル.

コンパイル済みエンジン, プロファイル, デバイスメモリをひとまとめに所有し,
create / execute / プロファイル制御 / destroy のライフサイクルを提供する.

モジュールレベルの関数 (create, destroy, execute, ...) はハンドルが None でも
例外を送出せず, 何もしないか空の結果を返す. 他ランタイムからハンドルを
不透明な値として扱う呼び出し元はこちらを使う.

スレッド安全性:
    同じハンドルへの呼び出しは内部で排他制御しない. 複数スレッドから使う場合は
    呼び出し側でハンドル単位のロックなどにより直列化すること.
"""

import logging
from pathlib import Path
from typing import Optional

import numpy as np
from numpy.typing import ArrayLike

from trtpredict.config import PredictorConfig
from trtpredict.engine.protocol import ExecutionEngine
from trtpredict.errors import BindingError, EngineBuildError, ErrorKind, PredictorError
from trtpredict.logging import LoggerManager
from trtpredict.profiling import Profile
from trtpredict.profiling.profile import EMPTY_PROFILE
from trtpredict.runtime.binding_resolver import resolve_bindings
from trtpredict.runtime.device_buffers import DeviceMemory, TorchDeviceMemory
from trtpredict.runtime.execution_pipeline import ExecutionPipeline
from trtpredict.runtime.result_encoder import encode_predictions
from trtpredict.types.result_types import PredictionResult

logger: logging.Logger = LoggerManager().get_logger(__name__)


class PredictorHandle:
    """1つのエンジンと高々1つのプロファイルを所有する推論ハンドル.

    close() は1回だけ呼ぶこと. 2回目以降の呼び出しや close() 後の使用は
    未定義であり, 内部では検査しない.

    Attributes:
        engine: 所有する実行エンジン
        profile: プロファイル. start_profiling が呼ばれるまではNone
        memory: デバイスメモリのプリミティブ
        config: 推論設定
    """

    def __init__(
        self,
        engine: ExecutionEngine,
        memory: Optional[DeviceMemory] = None,
        config: Optional[PredictorConfig] = None,
    ) -> None:
        """ハンドルを初期化.

        Args:
            engine: コンパイル済みの実行エンジン (所有権を受け取る)
            memory: デバイスメモリ実装. 省略時は TorchDeviceMemory
            config: 推論設定. 省略時はデフォルト設定
        """
        self.config = config or PredictorConfig()
        self.engine: Optional[ExecutionEngine] = engine
        self.memory: DeviceMemory = memory or TorchDeviceMemory(self.config.device)
        self.profile: Optional[Profile] = None

    def __enter__(self) -> "PredictorHandle":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def execute(
        self,
        input_data: ArrayLike,
        input_name: str,
        output_name: str,
        batch_size: int,
        out: Optional[np.ndarray] = None,
    ) -> PredictionResult:
        """1バッチを実行し, 結果をJSON文字列として返す.

        失敗しても例外は送出せず, 失敗種別付きの PredictionResult を返す.

        Args:
            input_data: batch_size x C x H x W 個以上の float
            input_name: 入力テンソル名
            output_name: 出力テンソル名
            batch_size: バッチサイズ
            out: 生の出力を受け取るホスト配列 (任意)

        Returns:
            成功時は payload に ``[{"index": i, "probability": p}, ...]`` を持つ結果
        """
        assert self.engine is not None
        try:
            self._check_batch_size(batch_size)
            bindings = resolve_bindings(self.engine, input_name, output_name)
            pipeline = ExecutionPipeline(self.engine, self.memory, self.profile)
            output = pipeline.run(input_data, bindings, batch_size, out=out)
            return PredictionResult.success(encode_predictions(output, batch_size))
        except PredictorError as e:
            logger.error(f"推論に失敗しました [{e.kind.value}]: {e}")
            return PredictionResult.from_error(e)

    def _check_batch_size(self, batch_size: int) -> None:
        if batch_size < 1 or batch_size > self.config.max_batch_size:
            raise BindingError(
                "batch_size が範囲外です",
                {"batch_size": batch_size, "max_batch_size": self.config.max_batch_size},
            )

    def start_profiling(self, name: Optional[str] = None, metadata: Optional[str] = None) -> None:
        """プロファイリングを開始する.

        初回はプロファイルを作成し, 2回目以降は同じオブジェクトのエントリを
        破棄して開始時刻を取り直す. 名前とメタデータは初回のものを保持する.
        """
        if self.profile is None:
            self.profile = Profile(name, metadata)
        self.profile.start()
        logger.debug(f"プロファイリング開始: {self.profile.name!r}")

    def end_profiling(self) -> None:
        """プロファイルを閉じる. プロファイルがなければ何もしない."""
        if self.profile is not None:
            self.profile.end()

    def disable_profiling(self) -> None:
        """エントリを破棄して未開始の状態に戻す. プロファイル自体は再利用のため保持する."""
        if self.profile is not None:
            self.profile.reset()

    def read_profile(self) -> str:
        """現在のエントリをJSON配列で返す. データがなければ ``"[]"``."""
        if self.profile is None:
            return EMPTY_PROFILE
        return self.profile.read()

    def close(self) -> None:
        """エンジンとプロファイルを解放する."""
        self.engine.release()  # type: ignore[union-attr]
        self.engine = None
        if self.profile is not None:
            self.profile.reset()
            self.profile = None
        logger.debug("推論ハンドルを破棄しました")


def create(
    engine: Optional[ExecutionEngine],
    memory: Optional[DeviceMemory] = None,
    config: Optional[PredictorConfig] = None,
) -> Optional[PredictorHandle]:
    """エンジンの所有権を受け取ってハンドルを作成する.

    Args:
        engine: コンパイル済みエンジン. ビルド失敗時のNoneもそのまま受け付ける.
        memory: デバイスメモリ実装
        config: 推論設定

    Returns:
        ハンドル. engine が None の場合はNone
    """
    if engine is None:
        logger.error("エンジンがないためハンドルを作成できません")
        return None
    handle = PredictorHandle(engine, memory=memory, config=config)
    logger.debug("推論ハンドルを作成しました")
    return handle


def create_from_engine_file(
    engine_path: Path,
    memory: Optional[DeviceMemory] = None,
    config: Optional[PredictorConfig] = None,
) -> Optional[PredictorHandle]:
    """シリアライズ済みエンジンファイルからハンドルを作成する.

    読み込みに失敗した場合はエラーをログに出してNoneを返す.
    """
    from trtpredict.engine.tensorrt_engine import load_engine

    try:
        engine = load_engine(engine_path, config)
    except (EngineBuildError, ImportError) as e:
        logger.error(f"エンジンの読み込みに失敗しました: {e}")
        return None
    return create(engine, memory=memory, config=config)


def destroy(handle: Optional[PredictorHandle]) -> None:
    """ハンドルを破棄する. None の場合は何もしない."""
    if handle is None:
        return
    handle.close()


def execute(
    handle: Optional[PredictorHandle],
    input_data: ArrayLike,
    input_name: str,
    output_name: str,
    batch_size: int,
) -> PredictionResult:
    """ハンドルで1バッチを実行する. None の場合は INVALID_HANDLE の失敗結果を返す."""
    if handle is None:
        return PredictionResult.failure(ErrorKind.INVALID_HANDLE, "ハンドルがありません")
    return handle.execute(input_data, input_name, output_name, batch_size)


def start_profiling(
    handle: Optional[PredictorHandle],
    name: Optional[str] = None,
    metadata: Optional[str] = None,
) -> None:
    """プロファイリングを開始する. None の場合は何もしない."""
    if handle is not None:
        handle.start_profiling(name, metadata)


def end_profiling(handle: Optional[PredictorHandle]) -> None:
    """プロファイルを閉じる. None の場合は何もしない."""
    if handle is not None:
        handle.end_profiling()


def disable_profiling(handle: Optional[PredictorHandle]) -> None:
    """プロファイルを未開始状態に戻す. None の場合は何もしない."""
    if handle is not None:
        handle.disable_profiling()


def read_profile(handle: Optional[PredictorHandle]) -> str:
    """プロファイルをJSON配列で返す. None の場合は ``"[]"``."""
    if handle is None:
        return EMPTY_PROFILE
    return handle.read_profile()


def create_from_onnx(
    onnx_path: Path,
    output_name: str,
    memory: Optional[DeviceMemory] = None,
    config: Optional[PredictorConfig] = None,
) -> Optional[PredictorHandle]:
    """ONNXモデルからエンジンをビルドしてハンドルを作成する.

    パースやビルドに失敗した場合はエラーをログに出してNoneを返し,
    ハンドルは作成しない.
    """
    from trtpredict.engine.builder import TensorRTEngineBuilder

    try:
        engine = TensorRTEngineBuilder(config).build(onnx_path, output_name)
    except (EngineBuildError, ImportError) as e:
        logger.error(f"エンジンのビルドに失敗しました: {e}")
        return None
    return create(engine, memory=memory, config=config)
