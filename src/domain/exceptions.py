"""ドメイン固有の例外定義"""


class AiMuzonError(Exception):
    """基底例外クラス"""

    pass


class InvalidQueryError(AiMuzonError):
    """検索クエリ・期間指定が不正（上流APIは呼ばない）"""

    pass


class UpstreamError(AiMuzonError):
    """上流API（YouTube / プロキシ）エラーの基底"""

    def __init__(self, message: str, status: int | None = None, reason: str | None = None):
        super().__init__(message)
        self.status = status
        self.reason = reason


class UpstreamQuotaError(UpstreamError):
    """クォータ超過・アクセス拒否（403）。時間をおいて再試行してもらう"""

    pass


class UpstreamBadRequestError(UpstreamError):
    """リクエストパラメータ起因のエラー（4xx）。フィルタの見直しを促す"""

    pass


class UpstreamTransientError(UpstreamError):
    """その他の上流エラー・タイムアウト（リトライ対象）"""

    pass


class PartialEnrichmentError(AiMuzonError):
    """詳細・チャンネル情報の取得失敗（致命的ではない）"""

    def __init__(self, stage: str, cause: Exception):
        super().__init__(f"{stage} enrichment failed: {cause}")
        self.stage = stage
        self.cause = cause
