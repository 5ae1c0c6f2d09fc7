"""実行エンジンの Protocol 定義.

ハーネスはコンパイル済みエンジンの以下の機能のみを必要とする.

- バインディング総数
- テンソル名からスロット番号への解決
- スロットごとの形状取得
- 実行コンテキストの作成と, デバイスポインタ2つを渡したバッチ実行

構造的型付けにより, 実エンジンのアダプタとテスト用スタブを同じ型で扱える.
"""

from typing import List, Optional, Protocol, Tuple


class LayerProfiler(Protocol):
    """レイヤー実行時間の通知を受け取るプロファイラ."""

    def report_layer_time(self, layer_name: str, ms: float) -> None:
        """レイヤー1つ分の実行時間を受け取る.

        Args:
            layer_name: ネットワーク定義時に設定されたレイヤー名.
            ms: 実行時間 (ミリ秒).
        """
        ...


class ExecutionContext(Protocol):
    """1回の実行に使う実行コンテキスト."""

    def set_profiler(self, profiler: Optional[LayerProfiler]) -> None:
        """レイヤー時間の通知先を設定する."""
        ...

    def execute(self, batch_size: int, bindings: List[int]) -> bool:
        """バッチを同期実行する.

        Args:
            batch_size: バッチサイズ.
            bindings: スロット番号順のデバイスポインタ.

        Returns:
            成功した場合True.
        """
        ...

    def release(self) -> None:
        """コンテキストを解放する."""
        ...


class ExecutionEngine(Protocol):
    """コンパイル済み実行エンジン."""

    @property
    def num_bindings(self) -> int:
        """入出力バインディングの総数."""
        ...

    def get_binding_index(self, name: str) -> int:
        """テンソル名に対応するスロット番号を返す. 見つからなければ -1."""
        ...

    def get_binding_shape(self, index: int) -> Tuple[int, ...]:
        """スロットの形状を返す. 先頭はバッチ次元."""
        ...

    def create_execution_context(self) -> ExecutionContext:
        """新しい実行コンテキストを作成する."""
        ...

    def release(self) -> None:
        """エンジンを解放する."""
        ...
