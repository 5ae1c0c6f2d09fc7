"""argparse用のカスタム型バリデーション関数."""

import argparse
from pathlib import Path


def positive_int(value: str) -> int:
    """argparse用の正の整数バリデーション.

    Args:
        value (str): コマンドライン引数の文字列値

    Returns:
        int: 変換された正の整数

    Raises:
        argparse.ArgumentTypeError: 整数でない, または1未満の場合
    """
    try:
        int_value = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"整数を指定してください: {value}") from None
    if int_value < 1:
        raise argparse.ArgumentTypeError(f"1以上の整数を指定してください: {value}")
    return int_value


def existing_file(value: str) -> Path:
    """argparse用の既存ファイルパスバリデーション.

    Raises:
        argparse.ArgumentTypeError: ファイルが存在しない場合
    """
    path = Path(value)
    if not path.is_file():
        raise argparse.ArgumentTypeError(f"ファイルが見つかりません: {value}")
    return path
