"""
trtpredict.utils: ユーティリティモジュール.

設定ファイル読み込みとJSON出力の共通機能を提供
"""

from .config_loader import ConfigLoader
from .json_utils import write_json_file, write_json_text

__all__ = ["ConfigLoader", "write_json_file", "write_json_text"]
