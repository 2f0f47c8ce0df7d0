"""ロギング設定とLangSmithトレーシング統合"""

import logging
import os
import sys
import uuid
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, TypeVar

# LangSmithのインポート
try:
    from langsmith import traceable

    LANGSMITH_AVAILABLE = True
except ImportError:
    LANGSMITH_AVAILABLE = False
    traceable = None  # type: ignore

# 型変数
F = TypeVar("F", bound=Callable[..., Any])

# ロガーのキャッシュ
_loggers: dict[str, logging.Logger] = {}


def get_logger(name: str) -> logging.Logger:
    """
    名前付きロガーを取得

    Args:
        name: ロガー名（通常は __name__ を使用）

    Returns:
        設定済みのロガー
    """
    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    _loggers[name] = logger
    return logger


# WARNING 以上だけを出す外部ライブラリ
NOISY_LOGGERS = ("httpx", "httpcore", "googleapiclient", "urllib3", "uvicorn.access")

DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(level: int | str = logging.INFO, format_string: str = DEFAULT_FORMAT) -> None:
    """
    アプリケーション全体のロギングを設定

    Args:
        level: ログレベル（logging.INFO などの数値、または "DEBUG" などの名前）
        format_string: ログフォーマット文字列
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format=format_string,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def is_langsmith_enabled() -> bool:
    """LangSmithが有効かどうかを確認"""
    if not LANGSMITH_AVAILABLE:
        return False

    # Settingsから値を取得（.envファイルを読み込む）
    try:
        from config.settings import get_settings
        settings = get_settings()
        return settings.LANGSMITH_TRACING and bool(settings.LANGSMITH_API_KEY)
    except Exception:
        # Settingsが使えない場合は環境変数から直接取得
        tracing_enabled = os.getenv("LANGSMITH_TRACING", "").lower() in ("true", "1", "yes")
        api_key_set = bool(os.getenv("LANGSMITH_API_KEY"))
        return tracing_enabled and api_key_set


def generate_trace_metadata() -> dict[str, Any]:
    """
    トレース用のメタデータを生成

    各トレースを一意に識別するためのセッションIDとタイムスタンプを含む
    """
    return {
        "session_id": str(uuid.uuid4())[:8],  # 短縮UUID
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def trace(
    name: str | None = None,
    run_type: str = "tool",
    metadata: dict[str, Any] | None = None,
) -> Callable[[F], F]:
    """
    呼び出しをトレースするデコレータ（同期・非同期どちらの関数にも使える）

    LangSmithが無効の場合はパススルー
    各呼び出しで新しいrun_idを生成し、トレースが上書きされないようにする

    Example:
        @trace_tool(name="youtube_fetch_page")
        async def fetch_page(self, query: str) -> UpstreamPage:
            ...
    """
    def decorator(func: F) -> F:
        if is_langsmith_enabled() and traceable is not None:
            @wraps(func)
            def wrapper(*args: Any, **kwargs: Any) -> Any:
                combined_metadata = {
                    **(metadata or {}),
                    **generate_trace_metadata(),
                }
                traced_func = traceable(
                    name=name or func.__name__,
                    run_type=run_type,
                    metadata=combined_metadata,
                    run_id=uuid.uuid4(),
                )(func)
                # 非同期関数の場合はコルーチンがそのまま返る
                return traced_func(*args, **kwargs)

            return wrapper  # type: ignore
        else:
            return func

    return decorator


def trace_chain(
    name: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> Callable[[F], F]:
    """
    ユースケース全体をトレースするデコレータ
    """
    return trace(name=name, run_type="chain", metadata=metadata)


def trace_tool(
    name: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> Callable[[F], F]:
    """
    外部API呼び出しをトレースするデコレータ
    """
    return trace(name=name, run_type="tool", metadata=metadata)


class LogContext:
    """
    ログに添えるキー=値の組（None の項目は出力しない）

    Example:
        ctx = LogContext(q="ai music", page_token=None, mode="yt")
        logger.info(f"[Search] fetch {ctx}")  # q='ai music' | mode='yt'
    """

    def __init__(self, **kwargs: Any):
        self._data = {k: v for k, v in kwargs.items() if v is not None}

    def __str__(self) -> str:
        return " | ".join(f"{k}={v!r}" for k, v in self._data.items())
