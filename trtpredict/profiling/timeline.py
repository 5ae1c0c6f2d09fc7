"""レイヤー時間コールバックからタイムラインを組み立てるプロファイラ."""

import logging
from typing import Optional

from trtpredict.logging import LoggerManager
from trtpredict.profiling.profile import Profile

logger: logging.Logger = LoggerManager().get_logger(__name__)

NS_PER_MS = 1_000_000


class TimelineProfiler:
    """実行コンテキストに取り付ける LayerProfiler 実装.

    report_layer_time で受け取ったミリ秒を ns に変換し,
    Profile のカーソルから連続する区間としてエントリを追加する.
    カーソルは Profile 側に保持されるため, 同じセッション内の複数回の
    実行にまたがってもエントリは重ならず連続する.

    Args:
        profile: 記録先のプロファイル. None の場合は何も記録しない.
    """

    def __init__(self, profile: Optional[Profile]) -> None:
        self._profile = profile

    def report_layer_time(self, layer_name: str, ms: float) -> None:
        if self._profile is None:
            return
        duration_ns = int(NS_PER_MS * ms)
        if self._profile.add(layer_name, duration_ns) is None:
            logger.debug(f"プロファイルが無効のためレイヤー時間を破棄: {layer_name}")
