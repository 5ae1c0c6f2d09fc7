"""trtpredict.config: 推論ハーネスの設定."""

from .predictor_config import PredictorConfig, load_predictor_config

__all__ = ["PredictorConfig", "load_predictor_config"]
