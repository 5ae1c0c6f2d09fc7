"""出力バッファを (クラスインデックス, 確率) のJSON配列へ変換するモジュール.

並び順はサンプル順, サンプル内ではクラス順. 呼び出し側は
``example * C + class_index`` で結果を参照する.
"""

import json
from dataclasses import asdict
from typing import Iterator, List

import numpy as np

from trtpredict.types.result_types import PredictionRecord


def _split_batch(output: np.ndarray, batch_size: int) -> np.ndarray:
    if batch_size < 1:
        raise ValueError(f"batch_size は1以上である必要があります: {batch_size}")
    flat = np.asarray(output).reshape(-1)
    if flat.size % batch_size != 0:
        raise ValueError(
            f"出力要素数 {flat.size} が batch_size {batch_size} で割り切れません"
        )
    return flat.reshape(batch_size, flat.size // batch_size)


def iter_prediction_records(output: np.ndarray, batch_size: int) -> Iterator[PredictionRecord]:
    """出力を PredictionRecord として順に返す."""
    for row in _split_batch(output, batch_size).tolist():
        for index, probability in enumerate(row):
            yield PredictionRecord(index=index, probability=probability)


def encode_predictions(output: np.ndarray, batch_size: int) -> str:
    """出力バッファをJSON文字列にする.

    Args:
        output: 長さ batch_size x C の出力
        batch_size: バッチサイズ

    Returns:
        ``[{"index": int, "probability": float}, ...]`` 形式のJSON文字列

    Raises:
        ValueError: 出力長が batch_size で割り切れない場合
    """
    return json.dumps(
        [asdict(record) for record in iter_prediction_records(output, batch_size)]
    )


def decode_predictions(payload: str) -> List[PredictionRecord]:
    """encode_predictions の出力を PredictionRecord のリストに戻す."""
    return [
        PredictionRecord(index=int(item["index"]), probability=float(item["probability"]))
        for item in json.loads(payload)
    ]
