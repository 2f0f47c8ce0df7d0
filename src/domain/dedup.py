"""表示済み動画IDの管理"""

from collections.abc import Iterable

from src.domain.entities import VideoItem


class SeenSet:
    """一度表示した video_id の集合（単調増加のみ）"""

    def __init__(self) -> None:
        self._ids: set[str] = set()

    def __contains__(self, video_id: object) -> bool:
        return video_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def add_all(self, items: Iterable[VideoItem]) -> None:
        self._ids.update(item.video_id for item in items if item.video_id)

    def unseen(self, items: Iterable[VideoItem]) -> list[VideoItem]:
        """未表示の動画だけを返す（集合は更新しない。入力内の重複も除く）"""
        fresh: dict[str, VideoItem] = {}
        for item in items:
            if item.video_id and item.video_id not in self._ids:
                fresh.setdefault(item.video_id, item)
        return list(fresh.values())

    def take_unseen(self, items: Iterable[VideoItem]) -> list[VideoItem]:
        """未表示の動画を返し、同時に表示済みとして記録する"""
        fresh: list[VideoItem] = []
        for item in items:
            if not item.video_id or item.video_id in self._ids:
                continue
            self._ids.add(item.video_id)
            fresh.append(item)
        return fresh


class SeenRegistry:
    """スコープ（正規化済みクエリ）ごとの SeenSet"""

    def __init__(self) -> None:
        self._scopes: dict[str, SeenSet] = {}

    def scope(self, name: str) -> SeenSet:
        key = name.lower()
        if key not in self._scopes:
            self._scopes[key] = SeenSet()
        return self._scopes[key]

    def __len__(self) -> int:
        return len(self._scopes)
