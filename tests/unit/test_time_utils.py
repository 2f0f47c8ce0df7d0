"""公開日時ウィンドウユーティリティのテスト"""

from datetime import datetime, timedelta, timezone

import pytest

from src.domain.entities import DateWindow
from src.domain.exceptions import InvalidQueryError
from src.domain.time_utils import (
    default_date_window,
    minus_months,
    month_window_from,
    next_window_by_months,
    normalize_window_clamped,
    normalize_window_strict,
    parse_iso,
    to_rfc3339,
)

NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


class TestMinusMonths:
    """月単位の減算のテスト"""

    def test_basic(self) -> None:
        assert minus_months(utc(2024, 6, 15), 1) == utc(2024, 5, 15)

    def test_clamps_to_month_end(self) -> None:
        """3/31 の1ヶ月前は2月末"""
        assert minus_months(utc(2024, 3, 31), 1) == utc(2024, 2, 29)
        assert minus_months(utc(2023, 3, 31), 1) == utc(2023, 2, 28)

    def test_crosses_year(self) -> None:
        """年をまたぐ"""
        assert minus_months(utc(2024, 2, 10), 3) == utc(2023, 11, 10)
        assert minus_months(utc(2024, 6, 15), 12) == utc(2023, 6, 15)


class TestIsoConversion:
    """RFC3339 変換のテスト"""

    def test_to_rfc3339(self) -> None:
        """ミリ秒・Z付き"""
        assert to_rfc3339(utc(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05.000Z"

    def test_to_rfc3339_converts_offset(self) -> None:
        """UTC以外のタイムゾーンはUTCに変換"""
        jst = timezone(timedelta(hours=9))
        assert to_rfc3339(datetime(2024, 1, 1, 9, 0, tzinfo=jst)) == "2024-01-01T00:00:00.000Z"

    def test_parse_iso(self) -> None:
        """Z表記・タイムゾーンなし・不正値"""
        assert parse_iso("2024-01-02T03:04:05Z") == utc(2024, 1, 2, 3, 4, 5)
        assert parse_iso("2024-01-02T03:04:05") == utc(2024, 1, 2, 3, 4, 5)
        assert parse_iso("not a date") is None
        assert parse_iso("") is None
        assert parse_iso(None) is None


class TestWindows:
    """ウィンドウ生成のテスト"""

    def test_default_window(self) -> None:
        """デフォルトは直近1ヶ月"""
        window = default_date_window(NOW)
        assert window.published_after == utc(2024, 5, 15, 12)
        assert window.published_before == NOW

    def test_next_window_is_adjacent(self) -> None:
        """次のウィンドウは直前に隣接する"""
        current = DateWindow(utc(2024, 5, 1), utc(2024, 6, 1))
        older = next_window_by_months(current)
        assert older.published_before == current.published_after
        assert older.published_after == utc(2024, 4, 1)

    def test_month_window_from(self) -> None:
        """基準日時から n ヶ月前の1ヶ月幅"""
        oldest = utc(2023, 12, 15)
        assert month_window_from(oldest, 1) == DateWindow(utc(2023, 11, 15), utc(2023, 12, 15))
        assert month_window_from(oldest, 3) == DateWindow(utc(2023, 9, 15), utc(2023, 10, 15))

    def test_month_windows_move_strictly_back(self) -> None:
        """オフセットが増えるほどウィンドウは古くなり、互いに重ならない"""
        oldest = utc(2023, 12, 31)
        windows = [month_window_from(oldest, n) for n in range(1, 13)]
        for newer, older in zip(windows, windows[1:]):
            assert older.published_before == newer.published_after
            assert older.published_after < newer.published_after


class TestNormalizeWindowStrict:
    """クライアント側の正規化のテスト"""

    def test_defaults(self) -> None:
        """未指定ならデフォルト期間"""
        window = normalize_window_strict(None, None, now=NOW)
        assert window == default_date_window(NOW)

    def test_partial(self) -> None:
        """片方だけ指定"""
        window = normalize_window_strict("2024-06-01T00:00:00Z", None, now=NOW)
        assert window.published_after == utc(2024, 6, 1)
        assert window.published_before == NOW

    def test_inverted_rejected(self) -> None:
        """逆転した期間はエラー"""
        with pytest.raises(InvalidQueryError, match="publishedAfter must be before publishedBefore"):
            normalize_window_strict("2024-06-10T00:00:00Z", "2024-06-01T00:00:00Z", now=NOW)

    def test_equal_rejected(self) -> None:
        """同じ時刻もエラー"""
        with pytest.raises(InvalidQueryError):
            normalize_window_strict("2024-06-01T00:00:00Z", "2024-06-01T00:00:00Z", now=NOW)


class TestNormalizeWindowClamped:
    """プロキシ側の正規化のテスト"""

    def test_future_before_clamped_to_now(self) -> None:
        """未来の publishedBefore は現在時刻に"""
        after, before = normalize_window_clamped(None, "2030-01-01T00:00:00Z", now=NOW)
        assert after is None
        assert before == NOW

    def test_future_after_repaired(self) -> None:
        """未来の publishedAfter は before の1秒前に"""
        after, before = normalize_window_clamped(
            "2030-01-01T00:00:00Z", "2031-01-01T00:00:00Z", now=NOW
        )
        assert before == NOW
        assert after == NOW - timedelta(seconds=1)

    def test_inverted_repaired(self) -> None:
        """逆転した期間は拒否せずに補正"""
        after, before = normalize_window_clamped(
            "2024-06-10T00:00:00Z", "2024-06-01T00:00:00Z", now=NOW
        )
        assert before == utc(2024, 6, 1)
        assert after == utc(2024, 5, 31, 23, 59, 59)

    def test_untouched(self) -> None:
        """整合していればそのまま"""
        after, before = normalize_window_clamped(
            "2024-05-01T00:00:00Z", "2024-06-01T00:00:00Z", now=NOW
        )
        assert (after, before) == (utc(2024, 5, 1), utc(2024, 6, 1))

    def test_after_only_kept(self) -> None:
        """before がなければ after は補正しない"""
        after, before = normalize_window_clamped("2030-01-01T00:00:00Z", None, now=NOW)
        assert after == utc(2030, 1, 1)
        assert before is None
