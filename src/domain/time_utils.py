"""公開日時ウィンドウのユーティリティ"""

import calendar
from datetime import datetime, timedelta, timezone

from src.domain.entities import DateWindow
from src.domain.exceptions import InvalidQueryError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def minus_months(moment: datetime, months: int) -> datetime:
    """
    月単位で過去にずらす（月末は丸める）

    Example:
        2024-03-31 - 1ヶ月 → 2024-02-29
    """
    month_index = moment.year * 12 + (moment.month - 1) - months
    year, month0 = divmod(month_index, 12)
    last_day = calendar.monthrange(year, month0 + 1)[1]
    return moment.replace(year=year, month=month0 + 1, day=min(moment.day, last_day))


def to_rfc3339(moment: datetime) -> str:
    """UTCのRFC3339文字列（ミリ秒・Z付き）に変換"""
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value: str | datetime | None) -> datetime | None:
    """ISO 8601文字列をUTCのdatetimeに変換。解釈できなければ None"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        moment = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError:
            return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def default_date_window(now: datetime | None = None) -> DateWindow:
    """デフォルトの検索ウィンドウ（1ヶ月前〜現在）"""
    now = now or utc_now()
    return DateWindow(published_after=minus_months(now, 1), published_before=now)


def next_window_by_months(current: DateWindow, months_back: int = 1) -> DateWindow:
    """現在のウィンドウの直前に隣接する、より古いウィンドウを返す"""
    before = current.published_after
    return DateWindow(published_after=minus_months(before, months_back), published_before=before)


def month_window_from(oldest: datetime, offset_months: int) -> DateWindow:
    """
    基準日時から offset_months ヶ月遡った1ヶ月幅のウィンドウ

    offset_months=1 → [oldest - 1ヶ月, oldest]
    offset_months=2 → [oldest - 2ヶ月, oldest - 1ヶ月]
    """
    return DateWindow(
        published_after=minus_months(oldest, offset_months),
        published_before=minus_months(oldest, offset_months - 1),
    )


def normalize_window_strict(
    published_after: str | None,
    published_before: str | None,
    now: datetime | None = None,
) -> DateWindow:
    """
    クライアント側の正規化: 未指定はデフォルト期間で補い、逆転していればエラー

    Raises:
        InvalidQueryError: published_after >= published_before
    """
    default = default_date_window(now)
    after = parse_iso(published_after) or default.published_after
    before = parse_iso(published_before) or default.published_before
    if after >= before:
        raise InvalidQueryError("publishedAfter must be before publishedBefore")
    return DateWindow(published_after=after, published_before=before)


def normalize_window_clamped(
    published_after: str | None,
    published_before: str | None,
    now: datetime | None = None,
) -> tuple[datetime | None, datetime | None]:
    """
    プロキシ側の正規化: 拒否せずに補正する

    - 未来の published_before は現在時刻に丸める
    - それでも after >= before なら after を before の1秒前にする
    """
    now = now or utc_now()
    after = parse_iso(published_after)
    before = parse_iso(published_before)
    if before and before > now:
        before = now
    if after and before and after >= before:
        after = before - timedelta(seconds=1)
    return after, before
