"""1バッチ分の推論実行パイプライン.

H2D転送 -> 実行コンテキスト作成 -> (プロファイラ取り付け) -> 同期実行 -> D2H転送
の順に処理し, どの段階で失敗してもデバイス領域とコンテキストを解放する.
"""

import logging
from typing import Optional

import numpy as np
from numpy.typing import ArrayLike

from trtpredict.engine.protocol import ExecutionEngine
from trtpredict.errors import BindingError, ExecutionError
from trtpredict.logging import LoggerManager
from trtpredict.profiling import Profile, TimelineProfiler
from trtpredict.runtime.device_buffers import DeviceMemory, ExecutionBuffers
from trtpredict.types.binding_types import ResolvedBindings

logger: logging.Logger = LoggerManager().get_logger(__name__)


class ExecutionPipeline:
    """コピーイン・計算・コピーアウトを1回分実行するクラス.

    実行コンテキストは呼び出しごとに新しく作成し, 再利用しない.

    Attributes:
        engine: 実行エンジン
        memory: デバイスメモリのプリミティブ
        profile: 記録先プロファイル. ACTIVE の場合のみプロファイラを取り付ける
    """

    def __init__(
        self,
        engine: ExecutionEngine,
        memory: DeviceMemory,
        profile: Optional[Profile] = None,
    ) -> None:
        self.engine = engine
        self.memory = memory
        self.profile = profile

    def prepare_input(
        self, input_data: ArrayLike, bindings: ResolvedBindings, batch_size: int
    ) -> np.ndarray:
        """入力を float32 の連続1次元配列に変換し, 必要な長さに切り詰める.

        Raises:
            BindingError: 入力を float32 に変換できない場合,
                または入力要素数が batch_size 分に満たない場合
        """
        try:
            host_input = np.ascontiguousarray(input_data, dtype=np.float32).reshape(-1)
        except (ValueError, TypeError) as e:
            raise BindingError(
                "入力をfloat32配列に変換できません", {"reason": str(e)}
            ) from e
        required = batch_size * bindings.input.element_count
        if host_input.size < required:
            raise BindingError(
                "入力要素数が不足しています",
                {"expected": required, "actual": host_input.size},
            )
        return host_input[:required]

    def prepare_output(
        self, bindings: ResolvedBindings, batch_size: int, out: Optional[np.ndarray]
    ) -> np.ndarray:
        """ゼロ初期化済みのホスト出力バッファを返す.

        Raises:
            BindingError: ``out`` の dtype または要素数が合わない場合
        """
        output_count = batch_size * bindings.output.element_count
        if out is None:
            return np.zeros(output_count, dtype=np.float32)

        if out.dtype != np.float32 or out.size != output_count or not out.flags.c_contiguous:
            raise BindingError(
                "出力バッファは連続した float32 配列である必要があります",
                {"expected": output_count, "actual": out.size, "dtype": out.dtype},
            )
        out.fill(0)
        return out

    def run(
        self,
        input_data: ArrayLike,
        bindings: ResolvedBindings,
        batch_size: int,
        out: Optional[np.ndarray] = None,
    ) -> np.ndarray:
        """1バッチを同期実行し, ホスト側の出力を返す.

        Args:
            input_data: 入力値 (batch_size x C x H x W 個以上の float)
            bindings: 解決済みの入出力バインディング
            batch_size: バッチサイズ
            out: 出力先のホスト配列. 実行前にゼロで埋められ,
                途中で失敗した場合もゼロのまま残る.

        Returns:
            長さ batch_size x 出力要素数 の float32 配列

        Raises:
            BindingError: 入出力サイズの不整合
            DeviceMemoryError: デバイスメモリの確保・転送に失敗した場合
            ExecutionError: コンテキスト作成または実行に失敗した場合
        """
        host_output = self.prepare_output(bindings, batch_size, out)
        host_input = self.prepare_input(input_data, bindings, batch_size)

        input_nbytes = batch_size * bindings.input.byte_size
        output_nbytes = batch_size * bindings.output.byte_size

        with ExecutionBuffers(self.memory, input_nbytes, output_nbytes) as buffers:
            assert buffers.input is not None and buffers.output is not None
            self.memory.copy_host_to_device(buffers.input, host_input, input_nbytes)

            try:
                context = self.engine.create_execution_context()
            except RuntimeError as e:
                raise ExecutionError(f"実行コンテキストの作成に失敗しました: {e}") from e

            try:
                if self.profile is not None and self.profile.is_active:
                    context.set_profiler(TimelineProfiler(self.profile))

                slots = bindings.slot_order(buffers.input.ptr, buffers.output.ptr)
                try:
                    succeeded = context.execute(batch_size, slots)
                except RuntimeError as e:
                    raise ExecutionError(f"推論の実行に失敗しました: {e}") from e
                if not succeeded:
                    raise ExecutionError("推論の実行に失敗しました", {"batch_size": batch_size})

                self.memory.copy_device_to_host(host_output, buffers.output, output_nbytes)
            finally:
                context.release()

        return host_output
