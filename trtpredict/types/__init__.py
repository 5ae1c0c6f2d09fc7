"""推論ハーネス共通型モジュール."""

from .binding_types import Binding, ResolvedBindings
from .result_types import PredictionRecord, PredictionResult

__all__ = [
    "Binding",
    "ResolvedBindings",
    "PredictionRecord",
    "PredictionResult",
]
