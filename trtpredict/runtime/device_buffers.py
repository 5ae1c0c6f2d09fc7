"""1回の実行に閉じたデバイスバッファ管理.

デバイスメモリのプリミティブ (確保・解放・H2D/D2H転送) は DeviceMemory Protocol
として抽象化する. 既定実装は PyTorch の CUDA テンソルをバッファとして使うため,
pycuda は不要.
"""

import logging
from contextlib import ExitStack
from dataclasses import dataclass
from typing import Any, Optional, Protocol

import numpy as np
import torch

from trtpredict.errors import BindingError, DeviceMemoryError
from trtpredict.logging import LoggerManager

logger: logging.Logger = LoggerManager().get_logger(__name__)


@dataclass
class DeviceBuffer:
    """デバイス上の連続領域.

    Args:
        nbytes: 領域のバイト数.
        ptr: デバイスアドレス.
        storage: 実装ごとの実体 (CUDAテンソルなど). 解放後はNone.
    """

    nbytes: int
    ptr: int
    storage: Any = None


class DeviceMemory(Protocol):
    """デバイスメモリのプリミティブ. いずれも完全に成功するか DeviceMemoryError を送出する."""

    def allocate(self, nbytes: int) -> DeviceBuffer:
        ...

    def free(self, buffer: DeviceBuffer) -> None:
        ...

    def copy_host_to_device(self, dst: DeviceBuffer, src: np.ndarray, nbytes: int) -> None:
        ...

    def copy_device_to_host(self, dst: np.ndarray, src: DeviceBuffer, nbytes: int) -> None:
        ...


def _as_bytes(array: np.ndarray, nbytes: int) -> np.ndarray:
    """連続配列の先頭 ``nbytes`` バイトを uint8 ビューで返す."""
    view = array.reshape(-1).view(np.uint8)
    if view.size < nbytes:
        raise DeviceMemoryError(
            "ホストバッファが転送サイズより小さいです",
            {"host_bytes": view.size, "nbytes": nbytes},
        )
    return view[:nbytes]


class TorchDeviceMemory:
    """CUDA の uint8 テンソルを使う DeviceMemory 実装.

    Args:
        device: 確保先デバイス (例: "cuda", "cuda:1")
    """

    def __init__(self, device: str = "cuda") -> None:
        self.device = torch.device(device)

    def allocate(self, nbytes: int) -> DeviceBuffer:
        try:
            tensor = torch.empty(nbytes, dtype=torch.uint8, device=self.device)
        except RuntimeError as e:
            raise DeviceMemoryError(
                f"デバイスメモリの確保に失敗しました: {e}", {"nbytes": nbytes}
            ) from e
        return DeviceBuffer(nbytes=nbytes, ptr=int(tensor.data_ptr()), storage=tensor)

    def free(self, buffer: DeviceBuffer) -> None:
        buffer.storage = None
        buffer.ptr = 0

    def copy_host_to_device(self, dst: DeviceBuffer, src: np.ndarray, nbytes: int) -> None:
        host_bytes = _as_bytes(np.ascontiguousarray(src), nbytes)
        try:
            dst.storage[:nbytes].copy_(torch.from_numpy(host_bytes))
        except (RuntimeError, TypeError) as e:
            raise DeviceMemoryError(f"H2D転送に失敗しました: {e}", {"nbytes": nbytes}) from e

    def copy_device_to_host(self, dst: np.ndarray, src: DeviceBuffer, nbytes: int) -> None:
        host_bytes = _as_bytes(dst, nbytes)
        try:
            torch.from_numpy(host_bytes).copy_(src.storage[:nbytes])
            if self.device.type == "cuda":
                torch.cuda.synchronize(self.device)
        except (RuntimeError, TypeError) as e:
            raise DeviceMemoryError(f"D2H転送に失敗しました: {e}", {"nbytes": nbytes}) from e


class ExecutionBuffers:
    """入力・出力のデバイス領域を1回の実行の間だけ保持するコンテキストマネージャ.

    入力, 出力の順に確保する. 出力の確保に失敗した場合は確保済みの入力を解放してから
    例外を送出する. with ブロックを抜けるときは成功・失敗にかかわらず
    各領域をちょうど1回ずつ解放する.

    Example:
        >>> with ExecutionBuffers(memory, in_bytes, out_bytes) as buffers:
        ...     memory.copy_host_to_device(buffers.input, host_input, in_bytes)
    """

    def __init__(self, memory: DeviceMemory, input_nbytes: int, output_nbytes: int) -> None:
        if input_nbytes <= 0 or output_nbytes <= 0:
            raise BindingError(
                "バッファサイズは1バイト以上である必要があります",
                {"input_nbytes": input_nbytes, "output_nbytes": output_nbytes},
            )
        self._memory = memory
        self._input_nbytes = input_nbytes
        self._output_nbytes = output_nbytes
        self._stack: Optional[ExitStack] = None
        self.input: Optional[DeviceBuffer] = None
        self.output: Optional[DeviceBuffer] = None

    def __enter__(self) -> "ExecutionBuffers":
        with ExitStack() as stack:
            self.input = self._acquire(stack, self._input_nbytes)
            self.output = self._acquire(stack, self._output_nbytes)
            self._stack = stack.pop_all()
        logger.debug(
            f"デバイスバッファを確保: 入力={self._input_nbytes}B, 出力={self._output_nbytes}B"
        )
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """確保済みの領域をすべて解放する. 2回目以降は何もしない."""
        if self._stack is not None:
            stack, self._stack = self._stack, None
            stack.close()

    def _acquire(self, stack: ExitStack, nbytes: int) -> DeviceBuffer:
        buffer = self._memory.allocate(nbytes)
        stack.callback(self._memory.free, buffer)
        return buffer
