"""テスト共通フィクスチャ.

実エンジン・GPUなしで推論ハーネスを検証するためのスタブを提供する.

- HostDeviceMemory: ホストの numpy 配列をデバイス領域に見立てた DeviceMemory.
  確保・転送の失敗を注入でき, 確保/解放の履歴を記録する.
- StubEngine / StubContext: ExecutionEngine / ExecutionContext のスタブ.
  出力の各要素は ``example * C + class_index + (その example の入力先頭値)`` になる.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np
import pytest

from trtpredict.errors import DeviceMemoryError
from trtpredict.runtime.device_buffers import DeviceBuffer

DEFAULT_TENSORS: List[Tuple[str, Tuple[int, ...]]] = [
    ("data", (-1, 3, 4, 4)),
    ("prob", (-1, 5)),
]


class HostDeviceMemory:
    """ホストメモリ上の DeviceMemory 実装 (テスト用)."""

    def __init__(
        self,
        fail_on_allocation: Optional[int] = None,
        fail_h2d: bool = False,
        fail_d2h: bool = False,
    ) -> None:
        """スタブを初期化する.

        Args:
            fail_on_allocation: 何回目 (1始まり) の allocate を失敗させるか.
            fail_h2d: H2D転送を失敗させる場合True.
            fail_d2h: D2H転送を失敗させる場合True.
        """
        self.fail_on_allocation = fail_on_allocation
        self.fail_h2d = fail_h2d
        self.fail_d2h = fail_d2h
        self.regions: dict[int, np.ndarray] = {}
        self.allocations = 0
        self.freed: List[int] = []
        self.h2d_calls = 0
        self._next_ptr = 0x1000

    def allocate(self, nbytes: int) -> DeviceBuffer:
        self.allocations += 1
        if self.allocations == self.fail_on_allocation:
            raise DeviceMemoryError("out of memory", {"nbytes": nbytes})
        ptr = self._next_ptr
        self._next_ptr += nbytes + 0x100
        # 未初期化メモリに見立てて 0xFF で埋める
        self.regions[ptr] = np.full(nbytes, 0xFF, dtype=np.uint8)
        return DeviceBuffer(nbytes=nbytes, ptr=ptr, storage=self.regions[ptr])

    def free(self, buffer: DeviceBuffer) -> None:
        assert buffer.ptr in self.regions, f"double free: {buffer.ptr:#x}"
        del self.regions[buffer.ptr]
        self.freed.append(buffer.ptr)

    def copy_host_to_device(self, dst: DeviceBuffer, src: np.ndarray, nbytes: int) -> None:
        self.h2d_calls += 1
        if self.fail_h2d:
            raise DeviceMemoryError("h2d failed")
        self.regions[dst.ptr][:nbytes] = np.ascontiguousarray(src).view(np.uint8)[:nbytes]

    def copy_device_to_host(self, dst: np.ndarray, src: DeviceBuffer, nbytes: int) -> None:
        if self.fail_d2h:
            raise DeviceMemoryError("d2h failed")
        dst.reshape(-1).view(np.uint8)[:nbytes] = self.regions[src.ptr][:nbytes]

    def floats(self, ptr: int) -> np.ndarray:
        """領域を float32 として参照する."""
        return self.regions[ptr].view(np.float32)

    @property
    def live_regions(self) -> int:
        return len(self.regions)


class StubContext:
    """execute の呼び出しを記録する実行コンテキストのスタブ."""

    def __init__(self, engine: "StubEngine") -> None:
        self.engine = engine
        self.profiler: Optional[object] = None
        self.executed_with: Optional[Tuple[int, List[int]]] = None
        self.released = False

    def set_profiler(self, profiler: Optional[object]) -> None:
        self.profiler = profiler

    def execute(self, batch_size: int, bindings: List[int]) -> bool:
        self.executed_with = (batch_size, list(bindings))
        if self.engine.raise_on_execute:
            raise RuntimeError("CUDA error: an illegal memory access was encountered")
        if self.engine.fail_execute:
            return False

        for layer_name, ms in self.engine.layer_times:
            if self.profiler is not None:
                self.profiler.report_layer_time(layer_name, ms)

        self.engine.compute(batch_size, bindings)
        return True

    def release(self) -> None:
        self.released = True


class StubEngine:
    """名前と形状の組からなる ExecutionEngine のスタブ."""

    def __init__(
        self,
        memory: HostDeviceMemory,
        tensors: Optional[Sequence[Tuple[str, Tuple[int, ...]]]] = None,
        layer_times: Sequence[Tuple[str, float]] = (),
        fail_execute: bool = False,
        raise_on_execute: bool = False,
    ) -> None:
        self.memory = memory
        self.tensors = list(tensors if tensors is not None else DEFAULT_TENSORS)
        self.layer_times = list(layer_times)
        self.fail_execute = fail_execute
        self.raise_on_execute = raise_on_execute
        self.contexts: List[StubContext] = []
        self.released = False

    @property
    def num_bindings(self) -> int:
        return len(self.tensors)

    def get_binding_index(self, name: str) -> int:
        for index, (tensor_name, _) in enumerate(self.tensors):
            if tensor_name == name:
                return index
        return -1

    def get_binding_shape(self, index: int) -> Tuple[int, ...]:
        return self.tensors[index][1]

    def create_execution_context(self) -> StubContext:
        context = StubContext(self)
        self.contexts.append(context)
        return context

    def release(self) -> None:
        self.released = True

    def _count(self, index: int) -> int:
        return int(np.prod(self.tensors[index][1][1:]))

    def compute(self, batch_size: int, bindings: List[int]) -> None:
        """入力スロット0, 出力スロット1 を前提に出力を書き込む."""
        in_count = self._count(0)
        out_count = self._count(1)
        inputs = self.memory.floats(bindings[0])[: batch_size * in_count]
        outputs = self.memory.floats(bindings[1])
        for example in range(batch_size):
            base = inputs[example * in_count]
            for cls in range(out_count):
                outputs[example * out_count + cls] = example * out_count + cls + base


@pytest.fixture
def host_memory() -> HostDeviceMemory:
    """失敗注入なしの HostDeviceMemory."""
    return HostDeviceMemory()


@pytest.fixture
def make_memory():
    """失敗注入付き HostDeviceMemory を作るファクトリ."""
    return HostDeviceMemory


@pytest.fixture
def make_engine():
    """StubEngine を作るファクトリ.

    Example:
        >>> def test_example(make_engine, host_memory):
        ...     engine = make_engine(host_memory, layer_times=[("conv1", 1.0)])
    """
    return StubEngine
