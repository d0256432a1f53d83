"""Custom exception hierarchy for dota-hub.

Exception tree:
    DotaHubError
    +-- FetchError               (non-retriable HTTP error)
    |   +-- PageNotFound         (HTTP 404)
    +-- ApiUnavailable           (5xx or transport failure, retriable)
    +-- RateLimited              (HTTP 429, retriable)
    +-- IngestError              (raw record cannot become a game)
    |   +-- AmbiguousWinner      (tied non-zero scores, no winner flag)
    |   +-- UnplayedMatch        (0:0, no winner flag)
    +-- MergeInvariantViolation  (scoring/dedup logic is broken)
"""

from typing import Optional


class DotaHubError(Exception):
    """Base exception for all dota-hub errors."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class FetchError(DotaHubError):
    """Non-retriable fetch error (unexpected status code, malformed body).

    Do NOT retry these -- the resource is unavailable or invalid.
    """

    pass


class PageNotFound(FetchError):
    """HTTP 404 -- the requested API path or wiki page does not exist."""

    pass


class ApiUnavailable(DotaHubError):
    """Server-side error or dropped connection.

    This is a retriable error -- the client backs off and tries again.
    """

    pass


class RateLimited(DotaHubError):
    """Server returned HTTP 429 Too Many Requests.

    This is a retriable error. ``retry_after`` holds the Retry-After
    header value in seconds when the server sent one.
    """

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = 429,
        retry_after: Optional[float] = None,
    ):
        self.retry_after = retry_after
        super().__init__(message, url=url, status_code=status_code)


class IngestError(DotaHubError):
    """A raw match record cannot be turned into a canonical game.

    Callers skip the record, count it and keep going; one bad record
    never aborts a batch.
    """

    def __init__(self, message: str, *, match_id: Optional[str] = None):
        self.match_id = match_id
        super().__init__(message)


class AmbiguousWinner(IngestError):
    """Equal non-zero scores and no explicit winner flag."""

    pass


class UnplayedMatch(IngestError):
    """0:0 scores and no explicit winner flag -- the game has not been played."""

    pass


class MergeInvariantViolation(DotaHubError):
    """A merged series broke its win-count or uniqueness invariant.

    Fatal to the batch: bad input is reported as a warning, so reaching
    this means the merge or scoring code itself is wrong.
    """

    def __init__(self, message: str, *, series_id: Optional[str] = None):
        self.series_id = series_id
        super().__init__(message)
