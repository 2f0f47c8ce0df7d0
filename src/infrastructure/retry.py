"""リトライ戦略"""

import logging

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

from src.domain.exceptions import UpstreamTransientError
from src.infrastructure.logging_config import get_logger

logger = get_logger(__name__)


def upstream_retry(max_attempts: int = 3, wait: wait_base | None = None):
    """
    上流API呼び出し用デコレータ

    一時的なエラー（UpstreamTransientError）のみジッター付き指数バックオフでリトライする。
    クォータ超過・不正リクエストはリトライしない。
    """
    return retry(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait or wait_exponential_jitter(initial=1, max=10),
        retry=retry_if_exception_type(UpstreamTransientError),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
