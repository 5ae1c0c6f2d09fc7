"""実行エンジン境界モジュール.

ハーネスが利用するエンジンAPIの Protocol 定義と,
TensorRT エンジンへのアダプタ・ローダー・ビルダーを提供する.
"""

from .protocol import ExecutionContext, ExecutionEngine, LayerProfiler
from .tensorrt_engine import (
    TensorRTEngine,
    check_tensorrt_availability,
    load_engine,
)

__all__ = [
    "ExecutionContext",
    "ExecutionEngine",
    "LayerProfiler",
    "TensorRTEngine",
    "check_tensorrt_availability",
    "load_engine",
]
