"""検索結果の並び替えポリシー"""

from src.domain.entities import SearchCandidate
from src.domain.time_utils import parse_iso

# 登録者数がこれ以上のチャンネルを「定評あり」とみなす
ESTABLISHED_SUBSCRIBERS = 100_000


def _published_ts(candidate: SearchCandidate) -> float:
    published = parse_iso(candidate.published_at)
    return published.timestamp() if published else 0.0


def is_established(candidate: SearchCandidate) -> bool:
    return candidate.subscriber_count >= ESTABLISHED_SUBSCRIBERS


def rank_candidates(candidates: list[SearchCandidate], order: str | None = "date") -> list[SearchCandidate]:
    """
    候補を並び替えた新しいリストを返す（入力は変更しない）

    1. キッズ向け（made for kids）を先に
    2. 同順位なら定評あるチャンネルを先に
    3. order が date の場合のみ、新しい順。それ以外は上流の順序を維持
    """
    by_date = (order or "date") == "date"

    def sort_key(candidate: SearchCandidate) -> tuple[int, int, float]:
        recency = -_published_ts(candidate) if by_date else 0.0
        return (
            0 if candidate.made_for_kids else 1,
            0 if is_established(candidate) else 1,
            recency,
        )

    return sorted(candidates, key=sort_key)
