"""trtpredict のコマンドラインインターフェース."""
