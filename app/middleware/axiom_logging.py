"""Axiom API 로깅 미들웨어.

Axiom API logging middleware. Sends one structured event per HTTP request
(method, path, params, masked body, status, duration, error detail) to an
Axiom dataset. Socket.IO traffic never reaches this middleware: the
Socket.IO ASGI app answers its own path before FastAPI sees the request.

Without ``AXIOM_API_TOKEN`` and ``AXIOM_DATASET`` it is a pass-through.
"""

import json
import logging
import re
import time
from typing import Any

from axiom_py import Client as AxiomClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.config import settings

logger = logging.getLogger(__name__)

# 마스킹 대상 필드 패턴 — Fields to mask in request bodies and params
_SENSITIVE_KEYS = re.compile(
    r"(password|passwd|secret|token|authorization|api_key|apikey|credential)",
    re.IGNORECASE,
)

# 로깅 제외 경로 — Paths excluded from logging
_SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

_MAX_DETAIL = 500


def _mask(data: Any, depth: int = 0) -> Any:
    """민감 필드 재귀 마스킹 — chat attachment lists are capped at 20 items."""
    if depth > 5:
        return "..."
    if isinstance(data, dict):
        return {
            k: "***" if _SENSITIVE_KEYS.search(str(k)) else _mask(v, depth + 1)
            for k, v in data.items()
        }
    if isinstance(data, list):
        return [_mask(item, depth + 1) for item in data[:20]]
    if isinstance(data, str) and len(data) > 2000:
        return data[:2000] + "...(truncated)"
    return data


async def _read_body(request: Request) -> Any:
    if request.method not in ("POST", "PUT", "PATCH"):
        return None
    body = await request.body()
    if not body:
        return None
    try:
        return _mask(json.loads(body))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return "(non-json body)"


def _error_detail(body: bytes) -> str:
    try:
        detail = json.loads(body).get("detail", "")
    except (json.JSONDecodeError, UnicodeDecodeError, AttributeError):
        detail = body.decode("utf-8", errors="replace")
    detail = str(detail)
    return detail if len(detail) <= _MAX_DETAIL else detail[:_MAX_DETAIL] + "..."


class AxiomLoggingMiddleware(BaseHTTPMiddleware):
    """모든 API 요청/응답을 Axiom에 로깅하는 미들웨어."""

    def __init__(self, app: Any) -> None:
        super().__init__(app)
        self._dataset: str = settings.AXIOM_DATASET
        self._client: AxiomClient | None = None
        if settings.AXIOM_API_TOKEN and settings.AXIOM_DATASET:
            self._client = AxiomClient(token=settings.AXIOM_API_TOKEN)

    def _skipped(self, path: str) -> bool:
        return path in _SKIP_PATHS or path.lstrip("/").startswith(settings.SOCKETIO_PATH.strip("/"))

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._client is None or self._skipped(request.url.path):
            return await call_next(request)

        started = time.perf_counter()
        event: dict[str, Any] = {"method": request.method, "path": request.url.path, "status_code": 500}
        if request.query_params:
            event["query_params"] = _mask(dict(request.query_params))
        request_body = await _read_body(request)
        if request_body is not None:
            event["request_body"] = request_body

        try:
            response = await call_next(request)
            event["status_code"] = response.status_code
            if response.status_code >= 400:
                # 에러 응답 본문을 읽고 다시 감쌈 (Consume the error body, then re-wrap it)
                body = b"".join(
                    [c if isinstance(c, bytes) else c.encode("utf-8") async for c in response.body_iterator]
                )
                event["error"] = _error_detail(body)
                response = Response(
                    content=body,
                    status_code=response.status_code,
                    headers=dict(response.headers),
                    media_type=response.media_type,
                )
            if request.path_params:
                event["path_params"] = dict(request.path_params)
            return response
        except Exception as exc:
            event["error"] = f"{type(exc).__name__}: {str(exc)[:300]}"
            raise
        finally:
            event["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
            self._ingest(event)

    def _ingest(self, event: dict[str, Any]) -> None:
        try:
            self._client.ingest_events(self._dataset, [event])
        except Exception:
            # 로깅 실패는 요청 처리에 영향 없음 (A failed ingest never fails the request)
            logger.warning("Axiom ingest failed for %s %s", event.get("method"), event.get("path"), exc_info=True)
