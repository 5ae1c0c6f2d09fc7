"""trtpredict.config.predictor_config: 型付き設定の Pydantic モデル."""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trtpredict.utils.config_loader import ConfigLoader


class PredictorConfig(BaseModel):
    """エンジン読み込み・ビルド・実行の設定."""

    model_config = ConfigDict(extra="ignore")

    max_batch_size: int = Field(default=32, gt=0)
    workspace_size: int = Field(default=1 << 30, gt=0)
    precision: Literal["fp32", "fp16"] = "fp32"
    trt_log_severity: Literal["ERROR", "WARNING", "INFO", "VERBOSE"] = "WARNING"
    default_profile_name: str = "trtpredict"
    device: str = Field(default="cuda", pattern=r"^cuda(:\d+)?$")

    @field_validator("default_profile_name")
    @classmethod
    def profile_name_must_not_be_blank(cls, v: str) -> str:
        """プロファイル名が空白のみでないことを検証する."""
        if v.strip() == "":
            raise ValueError("default_profile_name は空文字を許可しません")
        return v


def load_predictor_config(config_path: Optional[Union[str, Path]]) -> PredictorConfig:
    """設定ファイルを読み込んで PredictorConfig を返す.

    Args:
        config_path: Python形式の設定ファイルパス. None の場合はデフォルト設定.

    Returns:
        検証済みの設定

    Raises:
        FileNotFoundError: 設定ファイルが存在しない場合
        pydantic.ValidationError: 設定値が不正な場合
    """
    if config_path is None:
        return PredictorConfig()
    return PredictorConfig.model_validate(ConfigLoader.load_config(config_path))
