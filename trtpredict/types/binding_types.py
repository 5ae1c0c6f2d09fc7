"""バインディング解決結果の型定義."""

from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

FLOAT32_BYTES = np.dtype(np.float32).itemsize


@dataclass(frozen=True)
class Binding:
    """名前付きテンソルスロット.

    Args:
        name: テンソル名.
        index: エンジン内部のスロット番号.
        channels: 1サンプルあたりのチャネル数.
        height: 1サンプルあたりの高さ.
        width: 1サンプルあたりの幅.
    """

    name: str
    index: int
    channels: int
    height: int
    width: int

    @property
    def shape(self) -> Tuple[int, int, int]:
        """1サンプルあたりの形状 (channels, height, width)."""
        return (self.channels, self.height, self.width)

    @property
    def element_count(self) -> int:
        """1サンプルあたりの要素数."""
        return self.channels * self.height * self.width

    @property
    def byte_size(self) -> int:
        """1サンプルあたりのバイト数 (float32)."""
        return self.element_count * FLOAT32_BYTES


@dataclass(frozen=True)
class ResolvedBindings:
    """1回の実行で使用する入出力バインディングの組."""

    input: Binding
    output: Binding

    def slot_order(self, input_ptr: int, output_ptr: int) -> List[int]:
        """スロット番号順に並べたデバイスポインタのリストを返す.

        Args:
            input_ptr: 入力デバイス領域のアドレス.
            output_ptr: 出力デバイス領域のアドレス.

        Returns:
            エンジンに渡すバインディング配列.
        """
        bindings = [0, 0]
        bindings[self.input.index] = input_ptr
        bindings[self.output.index] = output_ptr
        return bindings
