"""推論結果の型定義."""

from dataclasses import dataclass
from typing import Optional

from trtpredict.errors import ErrorKind, PredictorError


@dataclass(frozen=True)
class PredictionRecord:
    """1クラス分の予測値.

    Args:
        index: サンプル内のクラスインデックス (0..C-1).
        probability: 出力値.
    """

    index: int
    probability: float


@dataclass(frozen=True)
class PredictionResult:
    """execute の結果 (成功/失敗のタグ付き).

    Args:
        ok: 成功した場合True.
        payload: 成功時のJSON文字列. 失敗時はNone.
        error_kind: 失敗時の種別. 成功時はNone.
        message: 失敗時のメッセージ.
    """

    ok: bool
    payload: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def success(cls, payload: str) -> "PredictionResult":
        """成功結果を作成する."""
        return cls(ok=True, payload=payload)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "PredictionResult":
        """失敗結果を作成する."""
        return cls(ok=False, error_kind=kind, message=message)

    @classmethod
    def from_error(cls, error: PredictorError) -> "PredictionResult":
        """例外から失敗結果を作成する."""
        return cls.failure(error.kind, str(error))
