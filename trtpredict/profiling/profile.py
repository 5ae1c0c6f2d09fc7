"""プロファイルセッションとエントリの定義.

Profile はハンドルごとに1つだけ存在し, 状態は次のように遷移する.

    IDLE --start()--> ACTIVE --end()--> ENDED
      ^                 |  ^              |
      +---disable()-----+  +---start()----+

ACTIVE の間だけエントリを受け付ける. start() は同じオブジェクトを再利用し,
エントリを破棄してセッション開始時刻とカーソルを現在時刻に戻す.
"""

import json
import time
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

EMPTY_PROFILE = "[]"


class ProfileState(Enum):
    """プロファイルの状態."""

    IDLE = "idle"
    ACTIVE = "active"
    ENDED = "ended"


@dataclass(frozen=True)
class ProfileEntry:
    """1レイヤー1回分の実行区間 [start_ns, end_ns)."""

    layer_name: str
    start_ns: int
    end_ns: int

    @property
    def duration_ns(self) -> int:
        return self.end_ns - self.start_ns


class Profile:
    """名前とメタデータ付きのプロファイルセッション.

    Attributes:
        name: セッション名
        metadata: 任意のメタデータ文字列
        state: 現在の状態
        start_ns: セッション開始時刻 (ns)
        end_ns: end() が呼ばれた時刻 (ns). 未終了ならNone
        cursor_ns: 次のエントリの開始時刻 (ns)
    """

    def __init__(
        self,
        name: Optional[str] = None,
        metadata: Optional[str] = None,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self.name = name or ""
        self.metadata = metadata or ""
        self._clock = clock
        self._entries: List[ProfileEntry] = []
        self.state = ProfileState.IDLE
        self.start_ns = 0
        self.end_ns: Optional[int] = None
        self.cursor_ns = 0

    @property
    def entries(self) -> List[ProfileEntry]:
        return list(self._entries)

    @property
    def is_active(self) -> bool:
        return self.state is ProfileState.ACTIVE

    def start(self) -> None:
        """エントリを破棄し, 開始時刻を取り直して ACTIVE にする."""
        self._entries.clear()
        self.start_ns = self._clock()
        self.cursor_ns = self.start_ns
        self.end_ns = None
        self.state = ProfileState.ACTIVE

    def end(self) -> None:
        """セッションを閉じる. ACTIVE でなければ何もしない."""
        if not self.is_active:
            return
        self.end_ns = self._clock()
        self.state = ProfileState.ENDED

    def reset(self) -> None:
        """エントリを破棄し, 未開始の状態に戻す."""
        self._entries.clear()
        self.start_ns = 0
        self.cursor_ns = 0
        self.end_ns = None
        self.state = ProfileState.IDLE

    def add(self, layer_name: str, duration_ns: int) -> Optional[ProfileEntry]:
        """カーソル位置から ``duration_ns`` の区間を追加し, カーソルを進める.

        Args:
            layer_name: レイヤー名
            duration_ns: 実行時間 (ns)

        Returns:
            追加したエントリ. ACTIVE でない場合はNone
        """
        if not self.is_active:
            return None
        entry = ProfileEntry(layer_name, self.cursor_ns, self.cursor_ns + duration_ns)
        self._entries.append(entry)
        self.cursor_ns = entry.end_ns
        return entry

    def read(self) -> str:
        """エントリをタイムライン順のJSON配列として返す."""
        if not self._entries:
            return EMPTY_PROFILE
        return json.dumps([asdict(entry) for entry in self._entries])

    def to_dict(self) -> Dict[str, Any]:
        """メタデータを含むプロファイル全体を辞書で返す."""
        return {
            "name": self.name,
            "metadata": self.metadata,
            "state": self.state.value,
            "start_ns": self.start_ns,
            "end_ns": self.end_ns,
            "entries": [asdict(entry) for entry in self._entries],
        }

    def __len__(self) -> int:
        return len(self._entries)
