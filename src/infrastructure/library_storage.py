"""お気に入り・最近の検索の永続化ストレージ"""

import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from src.domain.entities import VideoItem
from src.infrastructure.logging_config import get_logger

logger = get_logger(__name__)

# デフォルトの保存ディレクトリ
DEFAULT_DATA_DIR = Path("data")

# お気に入りとして保存する項目
FAVORITE_FIELDS = ("videoId", "title", "channelTitle", "thumbnailUrl", "publishedAt")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Failed to load {path}: {e}")
        return default


def _write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    tmp_path.replace(path)


class FavoritesStore:
    """video_id をキーにしたお気に入りストア（favorites.json）"""

    def __init__(self, data_dir: Path | None = None):
        self.path = (data_dir or DEFAULT_DATA_DIR) / "favorites.json"
        self._lock = threading.Lock()
        logger.debug(f"FavoritesStore initialized: {self.path}")

    def _load(self) -> dict[str, dict[str, Any]]:
        data = _read_json(self.path, {})
        return data if isinstance(data, dict) else {}

    def list(self) -> list[dict[str, Any]]:
        """新しく追加した順に返す"""
        with self._lock:
            rows = list(self._load().values())
        return sorted(rows, key=lambda row: row.get("createdAt", ""), reverse=True)

    def upsert(self, favorite: VideoItem | dict[str, Any]) -> dict[str, Any]:
        """
        お気に入りを追加・更新

        Raises:
            ValueError: videoId がない
        """
        data = favorite.to_dict() if isinstance(favorite, VideoItem) else dict(favorite)
        video_id = str(data.get("videoId") or "").strip()
        if not video_id:
            raise ValueError("videoId is required")

        with self._lock:
            rows = self._load()
            existing = rows.get(video_id, {})
            row = {name: data.get(name) for name in FAVORITE_FIELDS}
            row["videoId"] = video_id
            row["createdAt"] = existing.get("createdAt") or _now_iso()
            rows[video_id] = row
            _write_json(self.path, rows)

        logger.info(f"Favorite saved: {video_id}")
        return row

    def delete(self, video_id: str) -> bool:
        """お気に入りを削除。存在しなければ False"""
        with self._lock:
            rows = self._load()
            if video_id not in rows:
                return False
            del rows[video_id]
            _write_json(self.path, rows)
        logger.info(f"Favorite removed: {video_id}")
        return True


class RecentSearchLog:
    """最近の検索クエリの追記ログ（recent_searches.json）"""

    def __init__(self, data_dir: Path | None = None, max_entries: int = 200):
        self.path = (data_dir or DEFAULT_DATA_DIR) / "recent_searches.json"
        self.max_entries = max_entries
        self._lock = threading.Lock()

    def record(self, query: str) -> None:
        with self._lock:
            entries = _read_json(self.path, [])
            if not isinstance(entries, list):
                entries = []
            entries.append({"q": query, "at": _now_iso()})
            _write_json(self.path, entries[-self.max_entries:])

    def latest(self, limit: int = 10) -> list[dict[str, str]]:
        """新しい順に最大 limit 件"""
        with self._lock:
            entries = _read_json(self.path, [])
        if not isinstance(entries, list):
            return []
        return list(reversed(entries))[:limit]
