"""Unit tests for the OpenDota and Liquipedia API clients.

All tests route requests through ``httpx.MockTransport`` so no real HTTP
requests are made. Retry waits and pacing delays are configured to zero.
"""

import httpx
import pytest

from dota_hub.config import AggregatorConfig
from dota_hub.exceptions import ApiUnavailable, FetchError, PageNotFound, RateLimited
from dota_hub.http_client import ApiClient, LiquipediaClient, OpenDotaClient


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _make_config(**overrides) -> AggregatorConfig:
    """Create a config with fast settings for testing."""
    defaults = {
        "max_retries": 3,
        "min_delay": 0.0,
        "max_delay": 0.0,
        "retry_initial_wait": 0.0,
        "retry_max_wait": 0.0,
        "max_backoff": 0.0,
    }
    defaults.update(overrides)
    return AggregatorConfig(**defaults)


class Recorder:
    """MockTransport handler that replays queued responses and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def _json(data, status=200, headers=None) -> httpx.Response:
    return httpx.Response(status, json=data, headers=headers)


# ---------------------------------------------------------------------------
# ApiClient status mapping and retries
# ---------------------------------------------------------------------------

class TestApiClient:
    """Tests for ApiClient.get_json()."""

    @pytest.mark.asyncio
    async def test_success_returns_json(self):
        handler = Recorder(_json({"ok": True}))
        async with ApiClient("https://api.test", _make_config(),
                             transport=httpx.MockTransport(handler)) as client:
            assert await client.get_json("/thing") == {"ok": True}
            assert client.stats == {"requests": 1, "successes": 1, "errors": 0}
        assert str(handler.requests[0].url) == "https://api.test/thing"

    @pytest.mark.asyncio
    async def test_user_agent_sent(self):
        handler = Recorder(_json([]))
        config = _make_config(user_agent="dota-hub-tests")
        async with ApiClient("https://api.test", config,
                             transport=httpx.MockTransport(handler)) as client:
            await client.get_json("/x")
        assert handler.requests[0].headers["User-Agent"] == "dota-hub-tests"

    @pytest.mark.asyncio
    async def test_server_error_retried_then_succeeds(self):
        handler = Recorder(_json({}, status=503), _json({"ok": 1}))
        async with ApiClient("https://api.test", _make_config(),
                             transport=httpx.MockTransport(handler)) as client:
            assert await client.get_json("/x") == {"ok": 1}
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_server_error_exhausts_retries(self):
        handler = Recorder(_json({}, status=500))
        async with ApiClient("https://api.test", _make_config(max_retries=3),
                             transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(ApiUnavailable) as exc_info:
                await client.get_json("/x")
        assert exc_info.value.status_code == 500
        assert len(handler.requests) == 3

    @pytest.mark.asyncio
    async def test_not_found_not_retried(self):
        handler = Recorder(_json({}, status=404))
        async with ApiClient("https://api.test", _make_config(),
                             transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(PageNotFound):
                await client.get_json("/missing")
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_client_error_is_fetch_error(self):
        handler = Recorder(_json({}, status=400))
        async with ApiClient("https://api.test", _make_config(),
                             transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(FetchError) as exc_info:
                await client.get_json("/x")
        assert not isinstance(exc_info.value, PageNotFound)
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_rate_limited_carries_retry_after(self):
        handler = Recorder(_json({}, status=429, headers={"Retry-After": "7"}))
        async with ApiClient("https://api.test", _make_config(max_retries=2),
                             transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(RateLimited) as exc_info:
                await client.get_json("/x")
        assert exc_info.value.retry_after == 7.0
        assert len(handler.requests) == 2

    @pytest.mark.asyncio
    async def test_rate_limited_then_ok(self):
        handler = Recorder(_json({}, status=429), _json([1]))
        async with ApiClient("https://api.test", _make_config(),
                             transport=httpx.MockTransport(handler)) as client:
            assert await client.get_json("/x") == [1]

    @pytest.mark.asyncio
    async def test_transport_error_is_retriable(self):
        handler = Recorder(httpx.ConnectError("connection refused"), _json({"ok": 1}))
        async with ApiClient("https://api.test", _make_config(),
                             transport=httpx.MockTransport(handler)) as client:
            assert await client.get_json("/x") == {"ok": 1}
            assert client.stats["errors"] == 1

    @pytest.mark.asyncio
    async def test_invalid_json_is_fetch_error(self):
        handler = Recorder(httpx.Response(200, text="<html>maintenance</html>"))
        async with ApiClient("https://api.test", _make_config(),
                             transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(FetchError, match="Invalid JSON"):
                await client.get_json("/x")


# ---------------------------------------------------------------------------
# OpenDota
# ---------------------------------------------------------------------------

class TestOpenDotaClient:
    """Tests for OpenDotaClient endpoints."""

    @pytest.mark.asyncio
    async def test_pro_matches_with_key_and_paging(self):
        handler = Recorder(_json([{"match_id": 1}]))
        config = _make_config(opendota_api_key="secret")
        async with OpenDotaClient(config, transport=httpx.MockTransport(handler)) as client:
            matches = await client.get_pro_matches(less_than_match_id=999)

        assert matches == [{"match_id": 1}]
        request = handler.requests[0]
        assert request.url.path == "/api/proMatches"
        assert request.url.params["less_than_match_id"] == "999"
        assert request.headers["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_no_key_no_auth_header(self):
        handler = Recorder(_json([]))
        async with OpenDotaClient(_make_config(), transport=httpx.MockTransport(handler)) as client:
            await client.get_teams()
        assert "Authorization" not in handler.requests[0].headers
        assert handler.requests[0].url.path == "/api/teams"

    @pytest.mark.asyncio
    async def test_non_list_response_rejected(self):
        handler = Recorder(_json({"error": "nope"}))
        async with OpenDotaClient(_make_config(), transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(FetchError, match="JSON array"):
                await client.get_teams()


# ---------------------------------------------------------------------------
# Liquipedia
# ---------------------------------------------------------------------------

class TestLiquipediaClient:
    """Tests for LiquipediaClient page and logo lookups."""

    @pytest.mark.asyncio
    async def test_get_page_html(self):
        handler = Recorder(_json({"parse": {"text": {"*": "<div>bracket</div>"}}}))
        async with LiquipediaClient(_make_config(), transport=httpx.MockTransport(handler)) as client:
            html = await client.get_page_html("BLAST/Slam/6")

        assert html == "<div>bracket</div>"
        params = handler.requests[0].url.params
        assert params["action"] == "parse"
        assert params["page"] == "BLAST/Slam/6"
        assert params["prop"] == "text"

    @pytest.mark.asyncio
    async def test_missing_page(self):
        handler = Recorder(_json({"error": {"code": "missingtitle", "info": "gone"}}))
        async with LiquipediaClient(_make_config(), transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(PageNotFound):
                await client.get_page_html("Nope")

    @pytest.mark.asyncio
    async def test_other_api_error(self):
        handler = Recorder(_json({"error": {"code": "badvalue", "info": "bad"}}))
        async with LiquipediaClient(_make_config(), transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(FetchError, match="bad"):
                await client.get_page_html("X")

    @pytest.mark.asyncio
    async def test_team_logo_from_infobox(self):
        html = (
            '<div class="infobox-image"><a href="#">'
            '<img src="//liquipedia.net/commons/images/og_logo.png"></a></div>'
        )
        handler = Recorder(_json({"parse": {"text": {"*": html}, "images": []}}))
        async with LiquipediaClient(_make_config(), transport=httpx.MockTransport(handler)) as client:
            logo = await client.get_team_logo("OG")

        assert logo == "https://liquipedia.net/commons/images/og_logo.png"
        assert handler.requests[0].url.params["page"] == "OG"

    @pytest.mark.asyncio
    async def test_team_logo_from_image_info(self):
        handler = Recorder(
            _json({"parse": {"text": {"*": "<p>no infobox</p>"},
                             "images": ["Banner.jpg", "Team_Spirit_allmode.png"]}}),
            _json({"query": {"pages": {"-1": {"imageinfo": [{"url": "https://img/spirit.png"}]}}}}),
        )
        async with LiquipediaClient(_make_config(), transport=httpx.MockTransport(handler)) as client:
            logo = await client.get_team_logo("Team Spirit")

        assert logo == "https://img/spirit.png"
        assert handler.requests[0].url.params["page"] == "Team_Spirit"
        assert handler.requests[1].url.params["titles"] == "File:Team_Spirit_allmode.png"

    @pytest.mark.asyncio
    async def test_team_logo_unknown_team(self):
        handler = Recorder(_json({}, status=404))
        async with LiquipediaClient(_make_config(), transport=httpx.MockTransport(handler)) as client:
            assert await client.get_team_logo("Nobody") is None
