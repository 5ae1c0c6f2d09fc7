"""
trtpredict.logging: ログ管理モジュール.

colorlogを使用したパッケージ共通のロガーを提供
"""

from .logger_manager import LoggerManager, LogLevel

__all__ = ["LoggerManager", "LogLevel"]
