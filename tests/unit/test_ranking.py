"""並び替えポリシーのテスト"""

from conftest import make_candidate

from src.domain.ranking import ESTABLISHED_SUBSCRIBERS, is_established, rank_candidates


def ids(candidates) -> list[str]:
    return [c.video_id for c in candidates]


class TestRankCandidates:
    """rank_candidates のテスト"""

    def test_kids_first(self) -> None:
        """キッズ向けが最優先"""
        a = make_candidate("a", made_for_kids=False, subscribers=1_000_000)
        b = make_candidate("b", made_for_kids=True, subscribers=0)
        assert ids(rank_candidates([a, b])) == ["b", "a"]

    def test_established_channel_second(self) -> None:
        """同順位なら定評あるチャンネルが先"""
        small = make_candidate("small", subscribers=99_999, published_at="2024-06-10T00:00:00Z")
        big = make_candidate("big", subscribers=100_000, published_at="2024-01-01T00:00:00Z")
        assert ids(rank_candidates([small, big])) == ["big", "small"]

    def test_recency_when_order_is_date(self) -> None:
        """order=date なら新しい順"""
        old = make_candidate("old", published_at="2024-01-01T00:00:00Z")
        new = make_candidate("new", published_at="2024-05-01T00:00:00Z")
        assert ids(rank_candidates([old, new], "date")) == ["new", "old"]

    def test_default_order_is_date(self) -> None:
        """order 未指定は date として扱う"""
        old = make_candidate("old", published_at="2024-01-01T00:00:00Z")
        new = make_candidate("new", published_at="2024-05-01T00:00:00Z")
        assert ids(rank_candidates([old, new], None)) == ["new", "old"]

    def test_other_order_keeps_upstream_order(self) -> None:
        """date 以外では同順位の上流の順序を保つ"""
        old = make_candidate("old", published_at="2024-01-01T00:00:00Z")
        new = make_candidate("new", published_at="2024-05-01T00:00:00Z")
        assert ids(rank_candidates([old, new], "viewCount")) == ["old", "new"]

    def test_missing_channel_is_not_established(self) -> None:
        """チャンネル情報なしは登録者0扱い"""
        unknown = make_candidate("unknown", subscribers=None)
        assert not is_established(unknown)
        assert is_established(make_candidate("known", subscribers=ESTABLISHED_SUBSCRIBERS))

    def test_does_not_mutate_input(self) -> None:
        """入力リストは変更しない"""
        candidates = [
            make_candidate("a", published_at="2024-01-01T00:00:00Z"),
            make_candidate("b", published_at="2024-05-01T00:00:00Z"),
        ]
        rank_candidates(candidates)
        assert ids(candidates) == ["a", "b"]
