"""YouTube Data API v3 クライアント"""

import asyncio
import json
from typing import Any

import httplib2
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from tenacity.wait import wait_base

from src.domain.entities import (
    DIRECT_MAX_RESULTS,
    ChannelStats,
    SearchCandidate,
    SearchOptions,
    UpstreamPage,
    VideoDetails,
)
from src.domain.exceptions import (
    PartialEnrichmentError,
    UpstreamBadRequestError,
    UpstreamError,
    UpstreamQuotaError,
    UpstreamTransientError,
)
from src.infrastructure.logging_config import get_logger, trace_tool
from src.infrastructure.retry import upstream_retry

logger = get_logger(__name__)


def clamp_max_results(requested: int | None, cap: int, default: int | None = None) -> int:
    """取得件数を [1, cap] に丸める"""
    value = requested if requested is not None else (default if default is not None else cap)
    return max(1, min(cap, value))


def _error_reason(error: HttpError) -> tuple[str | None, str]:
    """HttpError から (reason, message) を取り出す"""
    try:
        body = json.loads(error.content.decode("utf-8"))
    except (AttributeError, UnicodeDecodeError, ValueError):
        return None, str(error)
    payload = body.get("error", {}) if isinstance(body, dict) else {}
    if not isinstance(payload, dict):
        return None, str(payload)
    errors = payload.get("errors") or []
    reason = errors[0].get("reason") if errors and isinstance(errors[0], dict) else None
    return reason, payload.get("message") or str(error)


def map_http_error(error: HttpError) -> UpstreamError:
    """HttpError をドメインの上流エラーに変換"""
    status = int(getattr(error.resp, "status", 0) or 0)
    reason, message = _error_reason(error)
    if status == 403 or reason == "quotaExceeded" or "quota" in message.lower():
        return UpstreamQuotaError(
            "YouTube API quota reached or access forbidden. Please try again later.",
            status=status,
            reason=reason,
        )
    if 400 <= status < 500 or reason == "badRequest":
        return UpstreamBadRequestError(
            "Invalid YouTube API request. Please adjust filters or try again.",
            status=status,
            reason=reason,
        )
    return UpstreamTransientError(f"YouTube request failed: {status} {message}", status=status, reason=reason)


class YouTubeDataAPIClient:
    """
    YouTube Data API v3 を使用した動画検索

    1ページ分の取得は search.list → videos.list → channels.list の順に逐次実行する。
    search.list の失敗は呼び出し元に伝えるが、詳細・チャンネル取得の失敗は
    情報なしとして続行する。
    """

    MAX_BATCH_SIZE = 50  # videos.list / channels.list の1回あたりのID上限

    def __init__(
        self,
        api_key: str,
        timeout_sec: float = 10.0,
        max_attempts: int = 3,
        retry_wait: wait_base | None = None,
    ):
        """
        Args:
            api_key: YouTube Data API キー
            timeout_sec: 1回のAPI呼び出しのタイムアウト（秒）
            max_attempts: 一時エラー時の最大試行回数
            retry_wait: リトライ間隔（テスト用に差し替え可能）
        """
        self.youtube = build("youtube", "v3", developerKey=api_key, cache_discovery=False)
        self.timeout_sec = timeout_sec
        self._execute = upstream_retry(max_attempts, retry_wait)(self._execute_once)

    async def _execute_once(self, request: Any, label: str) -> dict[str, Any]:
        """
        APIリクエストを1回実行（ブロッキング呼び出しはスレッドに逃がす）

        httplib2.Http はスレッドセーフではないため、呼び出しごとに新しい接続を使う。
        ソケットにも同じタイムアウトを設定し、打ち切られたスレッドが残り続けないようにする。
        """
        http = httplib2.Http(timeout=self.timeout_sec)
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(request.execute, http=http),
                timeout=self.timeout_sec,
            )
        except HttpError as e:
            mapped = map_http_error(e)
            logger.error(f"[YouTube] {label} HTTPエラー: status={mapped.status} reason={mapped.reason}")
            raise mapped from e
        except asyncio.TimeoutError as e:
            logger.error(f"[YouTube] {label} タイムアウト ({self.timeout_sec}s)")
            raise UpstreamTransientError(f"YouTube {label} timed out") from e
        except (OSError, httplib2.HttpLib2Error) as e:
            # 接続拒否・リセット・ソケットタイムアウトなど
            logger.error(f"[YouTube] {label} 通信エラー: {type(e).__name__}: {e}")
            raise UpstreamTransientError(f"YouTube {label} connection failed: {e}") from e

    async def search_videos(self, params: dict[str, Any]) -> tuple[list[dict[str, Any]], str | None]:
        """
        search.list を実行

        Returns:
            (検索結果アイテム, nextPageToken)
        """
        request = self.youtube.search().list(**params)
        response = await self._execute(request, "search.list")
        return response.get("items", []), response.get("nextPageToken") or None

    async def get_video_details(self, video_ids: list[str]) -> dict[str, VideoDetails]:
        """videos.list で詳細情報を取得（50件ずつバッチ）"""
        results: dict[str, VideoDetails] = {}
        for i in range(0, len(video_ids), self.MAX_BATCH_SIZE):
            batch = video_ids[i:i + self.MAX_BATCH_SIZE]
            request = self.youtube.videos().list(
                part="contentDetails,statistics,status,snippet",
                id=",".join(batch),
                maxResults=len(batch),
            )
            response = await self._execute(request, "videos.list")
            for item in response.get("items", []):
                content = item.get("contentDetails", {})
                snippet = item.get("snippet", {})
                results[item["id"]] = VideoDetails(
                    video_id=item["id"],
                    duration=content.get("duration") or None,
                    view_count=item.get("statistics", {}).get("viewCount") or None,
                    tags=tuple(str(t) for t in snippet.get("tags", [])),
                    category_id=snippet.get("categoryId") or None,
                    made_for_kids=bool(item.get("status", {}).get("madeForKids")),
                    yt_rating=content.get("contentRating", {}).get("ytRating"),
                )
        return results

    async def get_channel_stats(self, channel_ids: list[str]) -> dict[str, ChannelStats]:
        """channels.list で登録者数を取得（50件ずつバッチ）"""
        results: dict[str, ChannelStats] = {}
        for i in range(0, len(channel_ids), self.MAX_BATCH_SIZE):
            batch = channel_ids[i:i + self.MAX_BATCH_SIZE]
            request = self.youtube.channels().list(part="statistics,snippet", id=",".join(batch))
            response = await self._execute(request, "channels.list")
            for item in response.get("items", []):
                raw = item.get("statistics", {}).get("subscriberCount") or "0"
                results[item["id"]] = ChannelStats(
                    channel_id=item["id"],
                    subscriber_count=int(raw) if str(raw).isdigit() else 0,
                )
        return results

    def _build_search_params(
        self,
        query: str,
        page_token: str | None,
        options: SearchOptions,
        max_results: int,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "part": "snippet",
            "q": query,
            "maxResults": max_results,
            "type": "video",
            "safeSearch": "strict",  # APIレベルでのファミリーフィルタ
        }
        if options.order:
            params["order"] = options.order
        if options.published_after:
            params["publishedAfter"] = options.published_after
        if options.published_before:
            params["publishedBefore"] = options.published_before
        if options.video_category_id:
            params["videoCategoryId"] = str(options.video_category_id)
        if options.video_duration:
            params["videoDuration"] = options.video_duration
        if options.video_syndicated:
            params["videoSyndicated"] = "true"
        if page_token:
            params["pageToken"] = page_token
        return params

    @trace_tool(name="youtube_fetch_page")
    async def fetch_page(
        self,
        query: str,
        page_token: str | None = None,
        options: SearchOptions | None = None,
        max_results_cap: int = DIRECT_MAX_RESULTS,
    ) -> UpstreamPage:
        """
        検索 + 詳細 + チャンネル統計を結合した1ページを取得

        Args:
            query: 検索クエリ
            page_token: 続きのページトークン
            options: 検索オプション
            max_results_cap: 取得件数の上限（直接30 / プロキシ50）

        Returns:
            UpstreamPage: 結合済みの候補と nextPageToken

        Raises:
            UpstreamQuotaError / UpstreamBadRequestError / UpstreamTransientError:
                search.list の失敗
        """
        options = options or SearchOptions()
        max_results = clamp_max_results(options.max_results, max_results_cap)
        params = self._build_search_params(query, page_token, options, max_results)

        logger.info(f"[YouTube] 検索開始: {query!r}")
        logger.debug(
            f"  maxResults={max_results}, order={options.order}, "
            f"window={options.published_after}..{options.published_before}, pageToken={page_token}"
        )

        items, next_page_token = await self.search_videos(params)
        items = [item for item in items if item.get("id", {}).get("videoId")]
        video_ids = [item["id"]["videoId"] for item in items]
        channel_ids = list(dict.fromkeys(
            item.get("snippet", {}).get("channelId")
            for item in items
            if item.get("snippet", {}).get("channelId")
        ))
        logger.info(f"  検索結果: {len(video_ids)}件 / チャンネル{len(channel_ids)}件")

        failures: list[Exception] = []
        details: dict[str, VideoDetails] = {}
        channels: dict[str, ChannelStats] = {}
        if video_ids:
            try:
                details = await self.get_video_details(video_ids)
            except UpstreamError as e:
                logger.warning(f"[YouTube] 詳細取得に失敗（情報なしとして続行）: {e}")
                failures.append(PartialEnrichmentError("videos", e))
        if channel_ids:
            try:
                channels = await self.get_channel_stats(channel_ids)
            except UpstreamError as e:
                logger.warning(f"[YouTube] チャンネル取得に失敗（情報なしとして続行）: {e}")
                failures.append(PartialEnrichmentError("channels", e))

        candidates = []
        for item in items:
            video_id = item["id"]["videoId"]
            snippet = item.get("snippet", {})
            thumbnails = snippet.get("thumbnails", {})
            thumbnail = thumbnails.get("medium", {}).get("url") or thumbnails.get("default", {}).get("url")
            channel_id = snippet.get("channelId")
            candidates.append(
                SearchCandidate(
                    video_id=video_id,
                    title=snippet.get("title") or "",
                    description=snippet.get("description") or "",
                    channel_id=channel_id,
                    channel_title=snippet.get("channelTitle") or "",
                    published_at=snippet.get("publishedAt"),
                    thumbnail_url=thumbnail,
                    details=details.get(video_id),
                    channel=channels.get(channel_id) if channel_id else None,
                )
            )

        return UpstreamPage(
            candidates=candidates,
            next_page_token=next_page_token,
            enrichment_failures=failures,
        )
