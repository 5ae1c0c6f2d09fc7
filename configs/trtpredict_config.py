"""trtpredict 設定ファイル.

trtpredict predict/build の --config に指定する.
"""

# エンジン生成・実行設定
max_batch_size = 8  # 最大バッチサイズ（ビルド時のOptimization Profileと実行時の上限）
workspace_size = 1 << 30  # TensorRTワークスペースサイズ (bytes)
precision = "fp32"  # "fp32" または "fp16"

# ログ設定
trt_log_severity = "WARNING"  # TensorRTのログ閾値

# プロファイル設定
default_profile_name = "trtpredict"  # --profile でNAME省略時のセッション名
