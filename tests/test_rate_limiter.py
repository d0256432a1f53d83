"""Unit tests for the adaptive rate limiter."""

from unittest.mock import AsyncMock, patch

import pytest

from dota_hub.config import AggregatorConfig
from dota_hub.rate_limiter import RateLimiter


def _make_limiter(**overrides) -> RateLimiter:
    """Create a RateLimiter with optional config overrides."""
    config = AggregatorConfig(**overrides)
    return RateLimiter(config)


class TestWait:
    """Tests for RateLimiter.wait()."""

    @pytest.mark.asyncio
    @patch("dota_hub.rate_limiter.time")
    @patch("dota_hub.rate_limiter.asyncio.sleep", new_callable=AsyncMock)
    async def test_wait_accounts_for_elapsed_time(self, mock_async_sleep, mock_time):
        """If 4s elapsed since last request and delay is 5s, sleep is ~1s."""
        mock_time.monotonic.return_value = 104.0

        limiter = _make_limiter(min_delay=5.0, max_delay=8.0)
        limiter._last_request_time = 100.0

        with patch("dota_hub.rate_limiter.random.uniform", return_value=5.0):
            slept = await limiter.wait()

        assert slept == 1.0
        mock_async_sleep.assert_called_once_with(1.0)

    @pytest.mark.asyncio
    @patch("dota_hub.rate_limiter.time")
    @patch("dota_hub.rate_limiter.asyncio.sleep", new_callable=AsyncMock)
    async def test_no_sleep_when_enough_time_passed(self, mock_async_sleep, mock_time):
        mock_time.monotonic.return_value = 500.0
        limiter = _make_limiter(min_delay=1.0)
        limiter._last_request_time = 100.0

        assert await limiter.wait() == 0.0
        mock_async_sleep.assert_not_called()

    @pytest.mark.asyncio
    @patch("dota_hub.rate_limiter.time")
    @patch("dota_hub.rate_limiter.asyncio.sleep", new_callable=AsyncMock)
    async def test_jitter_stays_under_max_delay(self, mock_async_sleep, mock_time):
        """The jitter window is clipped to max_delay before any backoff."""
        mock_time.monotonic.return_value = 100.0
        limiter = _make_limiter(min_delay=0.8, max_delay=1.0)
        limiter._last_request_time = 100.0

        with patch("dota_hub.rate_limiter.random.uniform", return_value=0.9) as uniform:
            await limiter.wait()

        uniform.assert_called_once_with(0.8, 1.0)


class TestPenalize:
    """Tests for RateLimiter.penalize() (server Retry-After)."""

    @pytest.mark.asyncio
    @patch("dota_hub.rate_limiter.time")
    @patch("dota_hub.rate_limiter.asyncio.sleep", new_callable=AsyncMock)
    async def test_next_wait_honours_penalty(self, mock_async_sleep, mock_time):
        mock_time.monotonic.return_value = 100.0
        limiter = _make_limiter(min_delay=0.0, max_delay=0.0)

        limiter.penalize(10)
        await limiter.wait()

        mock_async_sleep.assert_called_once_with(10.0)

    @pytest.mark.asyncio
    @patch("dota_hub.rate_limiter.time")
    @patch("dota_hub.rate_limiter.asyncio.sleep", new_callable=AsyncMock)
    async def test_penalty_capped_at_max_backoff(self, mock_async_sleep, mock_time):
        mock_time.monotonic.return_value = 100.0
        limiter = _make_limiter(min_delay=0.0, max_delay=0.0, max_backoff=5.0)

        limiter.penalize(3600)
        await limiter.wait()

        mock_async_sleep.assert_called_once_with(5.0)

    def test_reset_clears_penalty(self):
        limiter = _make_limiter()
        limiter.penalize(10)
        limiter.reset()
        assert limiter._not_before == 0.0


class TestBackoff:
    """Tests for RateLimiter.backoff()."""

    def test_backoff_increases_delay(self):
        """After backoff(), current_delay doubles (with default factor 2.0)."""
        limiter = _make_limiter(min_delay=3.0, backoff_factor=2.0)
        limiter.backoff()
        assert limiter.current_delay == 6.0

    def test_backoff_caps_at_max(self):
        """current_delay never exceeds max_backoff."""
        limiter = _make_limiter(min_delay=3.0, backoff_factor=2.0, max_backoff=10.0)
        for _ in range(10):
            limiter.backoff()
        assert limiter.current_delay == 10.0


class TestRecover:
    """Tests for RateLimiter.recover()."""

    def test_recover_decreases_delay(self):
        limiter = _make_limiter(min_delay=3.0, recovery_factor=0.95)
        limiter.backoff()
        elevated = limiter.current_delay
        limiter.recover()
        assert limiter.current_delay < elevated

    def test_recover_floors_at_min(self):
        """current_delay never drops below min_delay."""
        limiter = _make_limiter(min_delay=3.0, recovery_factor=0.5)
        for _ in range(100):
            limiter.recover()
        assert limiter.current_delay == 3.0
