"""trtpredict の例外階層.

内部処理は例外を送出し, 呼び出し境界 (PredictorHandle.execute とハンドルAPI)
で PredictionResult に変換される. 例外が境界を越えて呼び出し元へ伝播することはない.

分類:
    - BindingError: エンジンのバインディング構成・入力値の不整合 (CONFIGURATION)
    - DeviceMemoryError: デバイスメモリの確保・転送失敗 (RESOURCE)
    - ExecutionError: 推論実行そのものの失敗 (EXECUTION)
    - EngineBuildError: エンジンのパース・ビルド・読み込み失敗 (CONSTRUCTION)
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """失敗の種別."""

    CONFIGURATION = "configuration"
    RESOURCE = "resource"
    EXECUTION = "execution"
    CONSTRUCTION = "construction"
    INVALID_HANDLE = "invalid_handle"


class PredictorError(Exception):
    """trtpredict の全例外の基底クラス.

    Attributes:
        message: エラーメッセージ
        kind: 失敗の種別
        context: デバッグ用の付加情報
    """

    kind: ErrorKind = ErrorKind.EXECUTION

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class BindingError(PredictorError):
    """バインディング数の不一致, 名前解決の失敗, 入力サイズ不足など."""

    kind = ErrorKind.CONFIGURATION


class DeviceMemoryError(PredictorError):
    """デバイスメモリの確保・解放・転送の失敗."""

    kind = ErrorKind.RESOURCE


class ExecutionError(PredictorError):
    """実行コンテキストの作成またはバッチ実行の失敗."""

    kind = ErrorKind.EXECUTION


class EngineBuildError(PredictorError):
    """エンジンのパース・ビルド・デシリアライズの失敗."""

    kind = ErrorKind.CONSTRUCTION
