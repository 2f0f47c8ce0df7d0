"""プロキシサーバー経由の検索クライアント"""

from typing import Any

import httpx
from tenacity.wait import wait_base

from src.domain.entities import DIRECT_MAX_RESULTS, SearchMode, SearchOptions, SearchResponse
from src.domain.exceptions import (
    UpstreamBadRequestError,
    UpstreamError,
    UpstreamQuotaError,
    UpstreamTransientError,
)
from src.infrastructure.logging_config import get_logger, trace_tool
from src.infrastructure.retry import upstream_retry
from src.infrastructure.youtube_data_api import clamp_max_results

logger = get_logger(__name__)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or body)
    return str(body)


def map_proxy_status(response: httpx.Response) -> UpstreamError:
    """プロキシのHTTPステータスをドメインの上流エラーに変換"""
    status = response.status_code
    detail = _error_detail(response)
    if status == 403 or "quota" in detail.lower():
        return UpstreamQuotaError(
            "YouTube API quota reached or access forbidden. Please try again later.",
            status=status,
        )
    if 400 <= status < 500:
        return UpstreamBadRequestError(
            "Invalid search request. Please adjust filters or try again.",
            status=status,
        )
    return UpstreamTransientError(f"Proxy search failed: {status} {detail}", status=status)


class ProxySearchClient:
    """
    自前のプロキシサーバー（/api/search）経由で検索する取得経路

    サーバー側で安全フィルタ・並び替え済みの結果が返る。
    """

    mode: SearchMode = "proxy"

    def __init__(
        self,
        base_url: str,
        timeout_sec: float = 10.0,
        max_attempts: int = 3,
        retry_wait: wait_base | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            base_url: プロキシサーバーのベースURL
            timeout_sec: リクエストタイムアウト（秒）
            max_attempts: 一時エラー時の最大試行回数
            retry_wait: リトライ間隔（テスト用）
            transport: httpx のトランスポート（テスト用）
        """
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_sec,
            transport=transport,
        )
        self._get = upstream_retry(max_attempts, retry_wait)(self._get_once)

    async def close(self) -> None:
        await self.client.aclose()

    def _build_params(
        self,
        query: str,
        page_token: str | None,
        options: SearchOptions,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {
            "q": query,
            "maxResults": str(clamp_max_results(options.max_results, DIRECT_MAX_RESULTS)),
            "type": "video",
            "order": options.order or "date",
        }
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

    async def _get_once(self, params: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self.client.get("/api/search", params=params)
        except httpx.TimeoutException as e:
            logger.error(f"[Proxy] タイムアウト: {self.base_url}")
            raise UpstreamTransientError("Proxy search timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"[Proxy] 通信エラー: {e}")
            raise UpstreamTransientError(f"Proxy search failed: {e}") from e

        if response.is_error:
            mapped = map_proxy_status(response)
            logger.error(f"[Proxy] HTTPエラー: status={response.status_code}")
            raise mapped
        try:
            return response.json()
        except ValueError as e:
            # ゲートウェイのエラーページなどJSON以外の本文
            logger.error(f"[Proxy] 不正なレスポンス本文: status={response.status_code}")
            raise UpstreamTransientError("Proxy returned invalid JSON") from e

    @trace_tool(name="proxy_search")
    async def fetch(
        self,
        query: str,
        page_token: str | None = None,
        options: SearchOptions | None = None,
    ) -> SearchResponse:
        options = options or SearchOptions()
        params = self._build_params(query, page_token, options)
        logger.debug(f"[Proxy] GET /api/search q={query!r} pageToken={page_token}")
        data = await self._get(params)
        result = SearchResponse.from_dict(data)
        # サーバー側のキャッシュ有無はクライアントのキャッシュ判定と無関係
        result.cached = False
        result.query = result.query or query
        return result
