import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from config import settings
from core.errors import FetchError

log = logging.getLogger(__name__)

RETRY_STATUSES = {429, 500, 502, 503, 504}


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def _is_retryable(resp: httpx.Response) -> bool:
    return resp.status_code in RETRY_STATUSES


def _log_retry(retry_state: RetryCallState) -> None:
    outcome = retry_state.outcome
    reason = outcome.exception() if outcome.failed else outcome.result().status_code
    log.warning(
        f"Request to {retry_state.args[0]} failed ({reason}), "
        f"attempt {retry_state.attempt_number}, retrying"
    )


@dataclass
class FetchConfig:
    headers: dict[str, str] = field(default_factory=dict)
    max_retries: int = 3
    timeout_ms: int = 30000
    follow_redirects: bool = True

    @classmethod
    def from_settings(cls, headers: dict[str, str]) -> "FetchConfig":
        return cls(
            headers=dict(headers),
            max_retries=settings.transport_max_retries,
            timeout_ms=settings.transport_timeout_ms,
            follow_redirects=settings.transport_follow_redirects,
        )


class Response:
    """Transport response. The body is decoded on demand."""

    def __init__(self, status_code: int, status_text: str = "", body: bytes | str = b"", url: str = ""):
        self.status_code = status_code
        self.status_text = status_text
        self.url = url
        self._body = body.encode("utf-8") if isinstance(body, str) else body

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def text(self) -> str:
        return self._body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self._body)


Transport = Callable[[str, FetchConfig], Awaitable[Response]]


class HttpxTransport:
    def __init__(self, proxy_url: str | None = None):
        self.proxy_url = proxy_url if proxy_url is not None else settings.proxy_url
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if not self._client:
            self._client = httpx.AsyncClient(proxy=self.proxy_url or None)
        return self._client

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __call__(self, url: str, config: FetchConfig) -> Response:
        client = await self._get_client()
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(0, config.max_retries) + 1),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(httpx.TransportError) | retry_if_result(_is_retryable),
            before_sleep=_log_retry,
            # out of attempts: hand back the last response, or re-raise the last error
            retry_error_callback=lambda state: state.outcome.result(),
            sleep=_sleep,
        )
        resp = await retrying(
            client.get,
            url,
            headers=config.headers,
            timeout=config.timeout_ms / 1000,
            follow_redirects=config.follow_redirects,
        )
        return Response(resp.status_code, resp.reason_phrase, resp.content, str(resp.url))


default_transport = HttpxTransport()


async def fetch_checked(
    transport: Transport,
    url: str,
    headers: dict[str, str],
    platform: str,
    operation: str,
    **context,
) -> Response:
    """Fetch once through ``transport`` and raise FetchError unless the response is ok."""
    try:
        response = await transport(url, FetchConfig.from_settings(headers))
    except Exception as e:
        log.error(f"{platform} {operation} transport error ({context}): {e}")
        raise FetchError(platform, operation, 0, str(e), context) from e

    if not response.ok:
        log.warning(f"{platform} {operation} got {response.status_code} ({context})")
        raise FetchError(platform, operation, response.status_code, response.status_text, context)
    return response
