"""テンソル名からバインディングを解決するモジュール.

単一入力・単一出力のエンジンのみをサポートする.
形状は呼び出しごとに取り直し, キャッシュしない.
"""

import logging
from typing import Sequence, Tuple

from trtpredict.engine.protocol import ExecutionEngine
from trtpredict.errors import BindingError
from trtpredict.logging import LoggerManager
from trtpredict.types.binding_types import Binding, ResolvedBindings

logger: logging.Logger = LoggerManager().get_logger(__name__)

EXPECTED_BINDING_COUNT = 2


def per_example_dims(shape: Sequence[int]) -> Tuple[int, int, int]:
    """エンジンが返す形状から1サンプルあたりの (C, H, W) を求める.

    先頭のバッチ次元を除き, 足りない次元は末尾を1で埋める.
    例: (-1, 3, 224, 224) -> (3, 224, 224), (-1, 1000) -> (1000, 1, 1)

    Args:
        shape: バッチ次元を含む形状

    Returns:
        (channels, height, width)

    Raises:
        BindingError: 次元数が不正, または動的/非正の次元を含む場合
    """
    if len(shape) == 0:
        raise BindingError("バッチ次元のない形状はサポートしていません", {"shape": shape})

    dims = [int(d) for d in shape[1:]]
    if len(dims) > 3:
        raise BindingError(
            "1サンプルあたり3次元を超える形状はサポートしていません",
            {"shape": tuple(shape)},
        )
    if any(d <= 0 for d in dims):
        raise BindingError(
            "バッチ次元以外の動的次元はサポートしていません",
            {"shape": tuple(shape)},
        )

    dims += [1] * (3 - len(dims))
    return dims[0], dims[1], dims[2]


def resolve_binding(engine: ExecutionEngine, name: str) -> Binding:
    """テンソル名を1つ解決する.

    Args:
        engine: 実行エンジン
        name: テンソル名

    Returns:
        解決したバインディング

    Raises:
        BindingError: 名前が有効なスロットに解決できない場合
    """
    index = engine.get_binding_index(name)
    if index < 0 or index >= engine.num_bindings:
        raise BindingError("バインディング名を解決できません", {"name": name})

    channels, height, width = per_example_dims(engine.get_binding_shape(index))
    return Binding(name, index, channels, height, width)


def resolve_bindings(
    engine: ExecutionEngine, input_name: str, output_name: str
) -> ResolvedBindings:
    """入力・出力のテンソル名をまとめて解決する.

    Args:
        engine: 実行エンジン
        input_name: 入力テンソル名
        output_name: 出力テンソル名

    Returns:
        入出力バインディングの組

    Raises:
        BindingError: バインディング総数が2でない場合, 名前が解決できない場合,
            または入力と出力が同じスロットを指す場合
    """
    num_bindings = engine.num_bindings
    if num_bindings != EXPECTED_BINDING_COUNT:
        raise BindingError(
            f"入力1つ・出力1つのエンジンのみサポートしていますが, "
            f"{num_bindings}個のバインディングが検出されました"
        )

    input_binding = resolve_binding(engine, input_name)
    output_binding = resolve_binding(engine, output_name)
    if input_binding.index == output_binding.index:
        raise BindingError(
            "入力と出力が同じスロットを指しています",
            {"input": input_name, "output": output_name},
        )

    logger.debug(
        f"入力: {input_name} (slot={input_binding.index}, shape={input_binding.shape}), "
        f"出力: {output_name} (slot={output_binding.index}, shape={output_binding.shape})"
    )
    return ResolvedBindings(input=input_binding, output=output_binding)
