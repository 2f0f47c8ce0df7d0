"""コンテンツ安全フィルタ"""

from collections.abc import Iterable

from src.domain.entities import SearchCandidate

# 大文字小文字を区別しない部分一致で判定する
CONTENT_BLOCKLIST: tuple[str, ...] = (
    # 個別に報告された語
    "sanwariya", "pajama", "naked", "sex",
    # 性的表現
    "sexual", "nsfw", "xxx", "porn", "erotic", "18+", "x-rated", "nude", "nudity",
    "fetish", "bdsm",
    # 暴力
    "violent", "violence", "murder", "kill", "killing", "blood", "gore", "weapon",
    "gun", "shoot", "shooting", "stab", "stabbing", "war", "fight", "assault", "suicide",
    # 不適切な言葉
    "explicit", "swear", "profanity", "fuck", "shit", "bitch", "asshole", "cunt",
    "dick", "bastard",
    # 年齢制限の表記
    "age restricted",
)

ADULT_AGE = 18


def contains_blocked_term(text: str | None) -> bool:
    lowered = (text or "").lower()
    return any(term in lowered for term in CONTENT_BLOCKLIST)


def _any_blocked(texts: Iterable[str]) -> bool:
    return any(contains_blocked_term(text) for text in texts)


def is_safe(candidate: SearchCandidate, max_allowed_age: int) -> bool:
    """
    候補動画が表示可能かを判定

    1. max_allowed_age < 18 で年齢制限付きなら除外
    2. タイトル・説明文・タグのいずれかにブロック語を含めば除外

    詳細情報が取れていない候補は年齢制限なし・タグなしとして扱う（除外はしない）。
    タイトルは返却直前に is_title_blocked で再チェックされる。
    """
    details = candidate.details
    if max_allowed_age < ADULT_AGE and details is not None and details.is_age_restricted:
        return False
    if contains_blocked_term(candidate.title) or contains_blocked_term(candidate.description):
        return False
    return not _any_blocked(candidate.tags)


def is_title_blocked(title: str | None) -> bool:
    """タイトルのみのブロック語チェック"""
    return contains_blocked_term(title)
