"""JSON-over-HTTP client for connectors backed by official APIs."""

import asyncio
import logging
from typing import Any

import aiohttp

from feedhub.config import CrawlerSettings
from feedhub.errors import SourceError
from feedhub.utils.retry import RetryConfig, call_with_retry

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (aiohttp.ClientConnectionError, asyncio.TimeoutError)


class JsonClient:
    """Issues GET requests and returns decoded JSON bodies.

    Every request has a total timeout. Connection errors and timeouts are
    retried with backoff; anything still failing (including HTTP error
    statuses and undecodable bodies) is raised as `SourceError`.

    A client session is opened per request, so one instance can be shared by
    concurrent jobs without sharing connection state.
    """

    HEADERS = {
        "User-Agent": "feedhub/0.1 (+https://github.com/feedhub)",
        "Accept": "application/json",
    }

    def __init__(self, platform: str, settings: CrawlerSettings, base_url: str = ""):
        self.platform = platform
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=settings.request_timeout)
        self.retry = RetryConfig(
            max_retries=settings.max_retries,
            delay=settings.retry_delay,
            exceptions=TRANSIENT_ERRORS,
        )

    def url_for(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET `path` (relative to base_url, or absolute) and decode the JSON body."""
        url = self.url_for(path)
        clean_params = {k: str(v) for k, v in (params or {}).items() if v is not None}

        async def request() -> Any:
            async with aiohttp.ClientSession(headers=self.HEADERS, timeout=self.timeout) as session:
                async with session.get(url, params=clean_params) as response:
                    body = await response.json(content_type=None)
                    if response.status >= 400:
                        raise SourceError(
                            f"{self.platform} API error {response.status}: {self._error_message(body)}",
                            platform=self.platform,
                        )
                    return body

        try:
            return await call_with_retry(request, self.retry, label=f"GET {self._redact(url)}")
        except SourceError:
            raise
        except asyncio.TimeoutError as e:
            raise SourceError(f"{self.platform} API request timed out", platform=self.platform) from e
        except (aiohttp.ClientError, ValueError) as e:
            raise SourceError(
                f"{self.platform} API request failed: {type(e).__name__}: {e}",
                platform=self.platform,
            ) from e

    @staticmethod
    def _error_message(body: Any) -> str:
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict):
                return str(error.get("message") or error)
            if error:
                return str(error)
            if body.get("description"):
                return str(body["description"])
        return "unexpected response"

    @staticmethod
    def _redact(url: str) -> str:
        # Telegram puts the bot token in the path
        if "/bot" in url:
            head, _, tail = url.partition("/bot")
            return f"{head}/bot***/{tail.partition('/')[2]}"
        return url
