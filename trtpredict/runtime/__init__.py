"""推論実行ランタイム.

バインディング解決, デバイスバッファ管理, 実行パイプライン, 結果エンコードを提供する.
"""

from .binding_resolver import EXPECTED_BINDING_COUNT, resolve_bindings
from .device_buffers import DeviceBuffer, DeviceMemory, ExecutionBuffers, TorchDeviceMemory
from .execution_pipeline import ExecutionPipeline
from .result_encoder import decode_predictions, encode_predictions

__all__ = [
    "EXPECTED_BINDING_COUNT",
    "resolve_bindings",
    "DeviceBuffer",
    "DeviceMemory",
    "ExecutionBuffers",
    "TorchDeviceMemory",
    "ExecutionPipeline",
    "decode_predictions",
    "encode_predictions",
]
