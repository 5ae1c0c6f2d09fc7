"""
trtpredict.logging.logger_manager: ログ管理マネージャー.

推論ハーネス全体で共有するロガーを生成・管理する.
TensorRTのログもこのマネージャー配下のロガーへ転送される.
"""

import logging
from enum import Enum
from typing import Dict, Optional

try:
    import colorlog

    COLORLOG_AVAILABLE = True
except ImportError:
    COLORLOG_AVAILABLE = False


class LevelBasedFormatter(logging.Formatter):
    """デバッグモードかどうかで出力形式を切り替えるフォーマッター."""

    def __init__(
        self,
        info_format: str,
        debug_format: str,
        datefmt: str,
        use_color: bool = False,
        log_colors: dict | None = None,
        force_debug_format: bool = False,
    ) -> None:
        """フォーマッターを初期化."""
        super().__init__(datefmt=datefmt)
        self._force_debug_format = force_debug_format
        if use_color:
            self._info_formatter: logging.Formatter = colorlog.ColoredFormatter(
                info_format, datefmt=datefmt, log_colors=log_colors or {}
            )
            self._debug_formatter: logging.Formatter = colorlog.ColoredFormatter(
                debug_format, datefmt=datefmt, log_colors=log_colors or {}
            )
        else:
            self._info_formatter = logging.Formatter(info_format, datefmt=datefmt)
            self._debug_formatter = logging.Formatter(debug_format, datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:
        """ログレコードを整形."""
        record.levelname = {"WARNING": "WARN"}.get(record.levelname, record.levelname)
        formatter = (
            self._debug_formatter if self._force_debug_format else self._info_formatter
        )
        return str(formatter.format(record))


class LogLevel(Enum):
    """ログレベル列挙型."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggerManager:
    """
    ロガー管理クラス (シングルトン).

    モジュールごとのロガーを一度だけ生成し, 以降は同じインスタンスを返す.
    デフォルトレベルを DEBUG にすると, 既存ハンドラーの出力形式も
    ファイル名・行番号付きの形式へ切り替わる.

    Attributes:
        _loggers (Dict[str, logging.Logger]): 生成済みロガーの辞書
        _default_level (LogLevel): 新規ロガーに適用するレベル
    """

    _instance: Optional["LoggerManager"] = None
    _loggers: Dict[str, logging.Logger] = {}

    def __new__(cls) -> "LoggerManager":
        """シングルトンパターンの実装."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """LoggerManagerを初期化."""
        if hasattr(self, "_initialized"):
            return

        self._default_level = LogLevel.INFO
        self._use_debug_format = False
        self._info_format = (
            "%(asctime)s|%(log_color)s%(levelname)-5.5s%(reset)s| %(message)s"
        )
        self._debug_format = (
            "%(asctime)s|%(log_color)s%(levelname)-5.5s%(reset)s|"
            "%(filename)-24s|%(lineno)03d| %(message)s"
        )
        self._date_format = "%Y-%m-%d %H:%M:%S"
        self._log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARN": "yellow",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "red,bg_white",
        }
        self._initialized = True

    def get_logger(self, name: str, level: Optional[LogLevel] = None) -> logging.Logger:
        """
        指定された名前のロガーを取得または作成.

        Args:
            name (str): ロガー名 (通常は ``__name__``)
            level (LogLevel, optional): ログレベル. 省略時はデフォルトレベル

        Returns:
            logging.Logger: 設定済みロガー

        Examples:
            >>> logger = LoggerManager().get_logger("trtpredict.predictor")
            >>> logger.info("エンジンを読み込みました")
        """
        if name in self._loggers:
            return self._loggers[name]

        logger = logging.getLogger(name)
        if not logger.handlers:
            logger.setLevel(getattr(logging, (level or self._default_level).value))
            logger.addHandler(self._create_handler())
            logger.propagate = False

        self._loggers[name] = logger
        return logger

    def _create_handler(self) -> logging.Handler:
        """
        ストリームハンドラーを作成.

        Returns:
            logging.Handler: フォーマッター設定済みのハンドラー
        """
        handler: logging.Handler
        if COLORLOG_AVAILABLE:
            handler = colorlog.StreamHandler()
            formatter = LevelBasedFormatter(
                self._info_format,
                self._debug_format,
                datefmt=self._date_format,
                use_color=True,
                log_colors=self._log_colors,
                force_debug_format=self._use_debug_format,
            )
        else:
            handler = logging.StreamHandler()
            # colorlogがない場合は色指定を除いた形式
            formatter = LevelBasedFormatter(
                "%(asctime)s|%(levelname)-5.5s| %(message)s",
                "%(asctime)s|%(levelname)-5.5s|%(filename)-24s|%(lineno)03d| %(message)s",
                datefmt=self._date_format,
                use_color=False,
                force_debug_format=self._use_debug_format,
            )

        handler.setFormatter(formatter)
        return handler

    def set_default_level(self, level: LogLevel) -> None:
        """
        デフォルトのログレベルを設定.

        Args:
            level (LogLevel): 新しいデフォルトレベル
        """
        self._default_level = level
        self._use_debug_format = level == LogLevel.DEBUG
        for logger in self._loggers.values():
            for handler in logger.handlers:
                if isinstance(handler.formatter, LevelBasedFormatter):
                    handler.formatter._force_debug_format = self._use_debug_format

    def set_logger_level(self, name: str, level: LogLevel) -> None:
        """
        特定のロガーのレベルを設定.

        Args:
            name (str): ロガー名
            level (LogLevel): 新しいログレベル
        """
        if name in self._loggers:
            self._loggers[name].setLevel(getattr(logging, level.value))

    def set_all_levels(self, level: LogLevel) -> None:
        """
        管理下の全ロガーのレベルをまとめて設定.

        CLIの ``--debug`` 指定時に使用する.

        Args:
            level (LogLevel): 新しいログレベル
        """
        self.set_default_level(level)
        for name in self._loggers:
            self.set_logger_level(name, level)

    def get_available_loggers(self) -> list[str]:
        """
        管理されているロガーの名前一覧を取得.

        Returns:
            list[str]: ロガー名のリスト
        """
        return list(self._loggers.keys())

    @classmethod
    def reset(cls) -> None:
        """シングルトンインスタンスをリセット（主にテスト用）."""
        cls._instance = None
        cls._loggers.clear()
