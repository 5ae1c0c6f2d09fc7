"""
trtpredict: コンパイル済みTensorRTエンジンの同期推論・プロファイリングハーネス

Example:
    >>> from trtpredict import create_from_engine_file, destroy
    >>> handle = create_from_engine_file("model.engine")
    >>> handle.start_profiling("run1")
    >>> result = handle.execute(images, "data", "prob", batch_size=2)
    >>> result.ok, handle.read_profile()
    >>> destroy(handle)
"""

from .config import PredictorConfig
from .errors import (
    BindingError,
    DeviceMemoryError,
    EngineBuildError,
    ErrorKind,
    ExecutionError,
    PredictorError,
)
from .logging import LoggerManager
from .predictor import (
    PredictorHandle,
    create,
    create_from_engine_file,
    create_from_onnx,
    destroy,
    disable_profiling,
    end_profiling,
    execute,
    read_profile,
    start_profiling,
)
from .types import PredictionRecord, PredictionResult

__version__ = "0.1.0"

__all__ = [
    "PredictorConfig",
    "BindingError",
    "DeviceMemoryError",
    "EngineBuildError",
    "ErrorKind",
    "ExecutionError",
    "PredictorError",
    "LoggerManager",
    "PredictorHandle",
    "create",
    "create_from_engine_file",
    "create_from_onnx",
    "destroy",
    "disable_profiling",
    "end_profiling",
    "execute",
    "read_profile",
    "start_profiling",
    "PredictionRecord",
    "PredictionResult",
]
