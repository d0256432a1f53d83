"""Async HTTP clients for the OpenDota and Liquipedia APIs.

Both APIs are plain JSON over HTTPS, so a shared ``httpx.AsyncClient`` is
enough. Every request goes through the RateLimiter for pacing and through
tenacity for retries on transient failures (5xx, transport errors, 429).
Permanent failures (404, other 4xx, unparseable bodies) are raised at once.
"""

import logging
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from dota_hub.config import AggregatorConfig
from dota_hub.exceptions import (
    ApiUnavailable,
    FetchError,
    PageNotFound,
    RateLimited,
)
from dota_hub.liquipedia_parser import extract_logo_url
from dota_hub.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def _retry_after(response: httpx.Response) -> float | None:
    """Seconds from a numeric Retry-After header, if any."""
    value = response.headers.get("Retry-After", "").strip()
    if value.isdigit():
        return float(value)
    return None


class ApiClient:
    """JSON API client with pacing, retries and status mapping.

    Usage::

        async with ApiClient("https://api.opendota.com/api") as client:
            data = await client.get_json("/proMatches")

    Args:
        base_url: Prefix for every request path.
        config: Timeouts, retry and pacing settings.
        headers: Extra request headers.
        transport: Optional httpx transport (tests pass a MockTransport).
    """

    def __init__(
        self,
        base_url: str,
        config: AggregatorConfig | None = None,
        *,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if config is None:
            config = AggregatorConfig()

        self._config = config
        self._base_url = base_url.rstrip("/")
        self.rate_limiter = RateLimiter(config)
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.request_timeout),
            follow_redirects=True,
            headers={"User-Agent": config.user_agent, **(headers or {})},
            transport=transport,
        )

        # Request counters
        self._request_count = 0
        self._success_count = 0
        self._error_count = 0

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    @property
    def stats(self) -> dict[str, int]:
        return {
            "requests": self._request_count,
            "successes": self._success_count,
            "errors": self._error_count,
        }

    def url_for(self, path: str) -> str:
        if not path:
            return self._base_url
        return f"{self._base_url}/{path.lstrip('/')}"

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET *path* and decode the JSON body, retrying transient failures.

        Raises:
            PageNotFound: HTTP 404.
            FetchError: other 4xx status or a body that is not JSON.
            ApiUnavailable / RateLimited: still failing after max_retries.
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception_type((ApiUnavailable, RateLimited)),
            wait=wait_exponential_jitter(
                initial=self._config.retry_initial_wait,
                max=self._config.retry_max_wait,
                jitter=self._config.retry_initial_wait,
            ),
            stop=stop_after_attempt(self._config.max_retries),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._get_once(path, params)

    async def _get_once(self, path: str, params: dict[str, Any] | None) -> Any:
        url = self.url_for(path)
        await self.rate_limiter.wait()
        self._request_count += 1

        try:
            response = await self._client.get(url, params=params)
        except httpx.TransportError as e:
            self._error_count += 1
            self.rate_limiter.backoff()
            raise ApiUnavailable(f"Request to {url} failed: {e}", url=url) from e

        status = response.status_code
        if status == 404:
            self._error_count += 1
            raise PageNotFound(f"Not found: {url}", url=url, status_code=404)
        if status == 429:
            self._error_count += 1
            retry_after = _retry_after(response)
            if retry_after is not None:
                self.rate_limiter.penalize(retry_after)
            else:
                self.rate_limiter.backoff()
            raise RateLimited(
                f"Rate limited by {url}", url=url, retry_after=retry_after
            )
        if status >= 500:
            self._error_count += 1
            self.rate_limiter.backoff()
            raise ApiUnavailable(
                f"Server error {status} from {url}", url=url, status_code=status
            )
        if status >= 400:
            self._error_count += 1
            raise FetchError(
                f"HTTP {status} from {url}", url=url, status_code=status
            )

        try:
            data = response.json()
        except ValueError as e:
            self._error_count += 1
            raise FetchError(
                f"Invalid JSON from {url}", url=url, status_code=status
            ) from e

        self._success_count += 1
        self.rate_limiter.recover()
        logger.debug("GET %s -> %d", url, status)
        return data


class OpenDotaClient(ApiClient):
    """Client for the OpenDota REST API."""

    def __init__(
        self,
        config: AggregatorConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if config is None:
            config = AggregatorConfig()
        headers = {}
        if config.opendota_api_key:
            headers["Authorization"] = f"Bearer {config.opendota_api_key}"
        super().__init__(
            config.opendota_base_url, config, headers=headers, transport=transport
        )

    async def _get_list(self, path: str, params: dict[str, Any] | None = None) -> list[dict]:
        data = await self.get_json(path, params)
        if not isinstance(data, list):
            raise FetchError(
                f"Expected a JSON array from {path}, got {type(data).__name__}",
                url=self.url_for(path),
            )
        return data

    async def get_pro_matches(self, less_than_match_id: int | None = None) -> list[dict]:
        """Most recent professional matches, newest first.

        Pass *less_than_match_id* to page further back.
        """
        params = None
        if less_than_match_id is not None:
            params = {"less_than_match_id": less_than_match_id}
        return await self._get_list("/proMatches", params)

    async def get_teams(self) -> list[dict]:
        """Teams ordered by rating, each with ``name`` and ``logo_url``."""
        return await self._get_list("/teams")


class LiquipediaClient(ApiClient):
    """Client for the Liquipedia MediaWiki API."""

    def __init__(
        self,
        config: AggregatorConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if config is None:
            config = AggregatorConfig()
        super().__init__(
            config.liquipedia_api_url,
            config,
            headers={"Accept-Encoding": "gzip"},
            transport=transport,
        )

    async def get_page_html(self, page: str) -> str:
        """Rendered HTML of a wiki page.

        Raises:
            PageNotFound: the wiki has no page with that title.
            FetchError: the response has no parsed text.
        """
        data = await self.get_json(
            "", {"action": "parse", "page": page, "format": "json", "prop": "text"}
        )
        url = self.url_for("")
        if not isinstance(data, dict):
            raise FetchError(f"Unexpected response for page {page!r}", url=url)

        error = data.get("error")
        if error:
            if error.get("code") == "missingtitle":
                raise PageNotFound(f"No Liquipedia page {page!r}", url=url)
            raise FetchError(
                f"Liquipedia error for page {page!r}: {error.get('info', error)}",
                url=url,
            )

        try:
            return data["parse"]["text"]["*"]
        except (KeyError, TypeError) as e:
            raise FetchError(f"No page text for {page!r}", url=url) from e

    async def get_team_logo(self, team_name: str) -> str | None:
        """Logo URL from a team's wiki page, or None if none is found.

        Tries the infobox image first, then a file listed on the page whose
        name looks like a logo, resolved through ``prop=imageinfo``.
        """
        page = "_".join(team_name.split())
        try:
            data = await self.get_json(
                "",
                {"action": "parse", "page": page, "format": "json", "prop": "text|images"},
            )
        except PageNotFound:
            return None

        parsed = data.get("parse") if isinstance(data, dict) else None
        if not parsed:
            return None

        html = (parsed.get("text") or {}).get("*", "")
        logo = extract_logo_url(html) if html else None
        if logo:
            return logo

        image = next(
            (
                img
                for img in parsed.get("images") or []
                if any(k in img.lower() for k in ("logo", "icon", "allmode"))
            ),
            None,
        )
        if image is None:
            return None

        info = await self.get_json(
            "",
            {
                "action": "query",
                "titles": f"File:{image}",
                "prop": "imageinfo",
                "iiprop": "url",
                "format": "json",
            },
        )
        pages = ((info or {}).get("query") or {}).get("pages") or {}
        for entry in pages.values():
            for item in entry.get("imageinfo") or []:
                if item.get("url"):
                    return item["url"]
        return None
