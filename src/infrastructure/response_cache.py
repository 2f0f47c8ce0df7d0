"""検索レスポンスのTTLキャッシュ（メモリ + diskcache の2段構成）"""

import copy
import json
import time
from pathlib import Path
from typing import Any, Callable

from diskcache import Cache

from src.infrastructure.logging_config import get_logger

logger = get_logger(__name__)


def stable_key(payload: dict[str, Any]) -> str:
    """キーの順序に依存しないキャッシュキーを生成"""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class ResponseCache:
    """
    レスポンス辞書を TTL 付きで保持するキャッシュ

    1段目はプロセス内の辞書、2段目は diskcache（任意）。
    期限切れのエントリは参照時に削除する（バックグラウンド掃除はしない）。
    get/set はどちらもディープコピーを受け渡すので、呼び出し側の変更はキャッシュに影響しない。
    """

    def __init__(
        self,
        ttl_sec: float,
        persistent_dir: str | Path | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            ttl_sec: 有効期限（秒）
            persistent_dir: diskcache の保存先。None ならメモリのみ
            clock: 現在時刻（エポック秒）を返す関数（テスト用）
        """
        self.ttl_sec = ttl_sec
        self._clock = clock
        self._memory: dict[str, tuple[float, dict[str, Any]]] = {}
        self._disk: Cache | None = None
        if persistent_dir is not None:
            path = Path(persistent_dir)
            path.mkdir(parents=True, exist_ok=True)
            self._disk = Cache(str(path))
            logger.debug(f"ResponseCache persistent tier: {path}")

        # 統計
        self.hits = 0
        self.misses = 0

    def _is_fresh(self, stored_at: float) -> bool:
        return (self._clock() - stored_at) < self.ttl_sec

    def get(self, key: str) -> tuple[dict[str, Any], str] | None:
        """
        キャッシュを参照

        Returns:
            (レスポンス辞書のコピー, ヒットした層 "memory" | "disk")、なければ None
        """
        entry = self._memory.get(key)
        if entry is not None:
            stored_at, payload = entry
            if self._is_fresh(stored_at):
                self.hits += 1
                return copy.deepcopy(payload), "memory"
            del self._memory[key]

        if self._disk is not None:
            raw = self._disk.get(key)
            if raw is not None:
                stored_at, payload = raw["at"], raw["data"]
                if self._is_fresh(stored_at):
                    # メモリ層を温める
                    self._memory[key] = (stored_at, copy.deepcopy(payload))
                    self.hits += 1
                    return copy.deepcopy(payload), "disk"
                self._disk.delete(key)

        self.misses += 1
        return None

    def set(self, key: str, payload: dict[str, Any]) -> None:
        stored_at = self._clock()
        self._memory[key] = (stored_at, copy.deepcopy(payload))
        if self._disk is not None:
            self._disk.set(key, {"at": stored_at, "data": copy.deepcopy(payload)}, expire=self.ttl_sec)

    def __len__(self) -> int:
        return len(self._memory)

    def close(self) -> None:
        if self._disk is not None:
            self._disk.close()
