"""
Metrics Fetcher: one YouTube Analytics reports call per ingestion run.

Upstream failures are mapped onto three distinguishable errors so callers
can tell an expired token or missing scope from a bad request or a network
failure.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional, Tuple

import httpx

from app.core.config import settings
from app.platforms import youtube
from app.utils.errors import UpstreamAuthError, UpstreamBadRequestError, UpstreamTransportError
from app.utils.logger import logger

ANALYTICS_SCOPE = "https://www.googleapis.com/auth/yt-analytics.readonly"

DAILY_METRICS = [
    "views",
    "estimatedMinutesWatched",
    "averageViewDuration",
    "likes",
    "comments",
    "shares",
    "subscribersGained",
    "subscribersLost",
]

QUOTA_REASONS = {"quotaExceeded", "dailyLimitExceeded", "rateLimitExceeded", "userRateLimitExceeded"}
SCOPE_REASONS = {"insufficientPermissions", "ACCESS_TOKEN_SCOPE_INSUFFICIENT"}
API_DISABLED_REASONS = {"accessNotConfigured", "SERVICE_DISABLED"}


@dataclass
class AnalyticsReport:
    column_headers: List[str] = field(default_factory=list)
    rows: List[list] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.rows

    @classmethod
    def from_response(cls, payload: dict) -> "AnalyticsReport":
        headers = [h.get("name") for h in payload.get("columnHeaders") or []]
        return cls(column_headers=headers, rows=payload.get("rows") or [])


def default_window(today: Optional[date] = None, days: Optional[int] = None) -> Tuple[str, str]:
    """
    Rolling window ending yesterday; same-day figures are not final upstream.
    Returns (startDate, endDate) as ISO strings, both inclusive.
    """
    today = today or date.today()
    days = days or settings.YOUTUBE_LOOKBACK_DAYS
    end = today - timedelta(days=1)
    start = end - timedelta(days=days - 1)
    return start.isoformat(), end.isoformat()


def _error_reasons(response: httpx.Response) -> Tuple[set, str]:
    try:
        error = response.json().get("error", {})
    except ValueError:
        return set(), response.text
    if not isinstance(error, dict):
        return set(), str(error)
    reasons = {e.get("reason") for e in error.get("errors", []) if e.get("reason")}
    reasons |= {d.get("reason") for d in error.get("details", []) if isinstance(d, dict) and d.get("reason")}
    return reasons, error.get("message") or response.text


def map_http_error(exc: httpx.HTTPStatusError) -> Exception:
    status = exc.response.status_code
    reasons, upstream_message = _error_reasons(exc.response)
    detail = f"HTTP {status}: {upstream_message}"

    if status == 401:
        return UpstreamAuthError(
            "YouTube rejected the access token. It has likely expired or been revoked; reconnect the account.",
            detail,
            reason="unauthorized",
        )
    if status == 403:
        if reasons & QUOTA_REASONS:
            return UpstreamAuthError(
                "YouTube Analytics API quota exceeded. Try again later.",
                detail,
                reason=next(iter(reasons & QUOTA_REASONS)),
            )
        if reasons & SCOPE_REASONS:
            return UpstreamAuthError(
                "The access token is missing the OAuth scope yt-analytics.readonly "
                f"({ANALYTICS_SCOPE}). Reconnect the account and grant analytics access.",
                detail,
                reason=next(iter(reasons & SCOPE_REASONS)),
            )
        if reasons & API_DISABLED_REASONS:
            return UpstreamAuthError(
                "The YouTube Analytics API is not enabled for this Google Cloud project.",
                detail,
                reason=next(iter(reasons & API_DISABLED_REASONS)),
            )
        return UpstreamAuthError(
            "YouTube denied access to analytics. Check quota, the yt-analytics.readonly scope "
            "and that the YouTube Analytics API is enabled.",
            detail,
            reason=next(iter(reasons), None),
        )
    if status == 400:
        return UpstreamBadRequestError(
            "YouTube Analytics rejected the request. The requested metrics and dimensions "
            "may be an incompatible combination.",
            detail,
        )
    return UpstreamTransportError(f"YouTube Analytics request failed with HTTP {status}.", detail)


async def fetch_daily_metrics(channel_id: str, access_token: str, start_date: Optional[str] = None, end_date: Optional[str] = None) -> AnalyticsReport:
    if not start_date or not end_date:
        start_date, end_date = default_window()

    try:
        payload = await youtube.query_reports(
            access_token,
            channel_id,
            start_date,
            end_date,
            metrics=DAILY_METRICS,
            dimensions="day",
            sort="day",
        )
    except httpx.HTTPStatusError as e:
        logger.error(f"YouTube Analytics API error response: {e.response.text}")
        raise map_http_error(e) from e
    except httpx.HTTPError as e:
        logger.error(f"YouTube Analytics transport error: {e!r}")
        raise UpstreamTransportError(
            "Could not reach the YouTube Analytics API. Check the network and try again.",
            repr(e),
        ) from e

    report = AnalyticsReport.from_response(payload)
    logger.info(f"YouTube Analytics returned {len(report.rows)} rows for channel {channel_id}")
    return report


async def fetch_channel_statistics(channel_id: str, access_token: str) -> dict:
    """
    Current channel totals from the Data API. Returns {"subscribers": n}, or {}
    when the channel is missing or hides its subscriber count.
    """
    try:
        statistics = await youtube.get_channel_statistics(access_token, channel_id)
    except httpx.HTTPStatusError as e:
        logger.error(f"YouTube channel statistics error response: {e.response.text}")
        raise map_http_error(e) from e
    except httpx.HTTPError as e:
        logger.error(f"YouTube channel statistics transport error: {e!r}")
        raise UpstreamTransportError(
            "Could not reach the YouTube Data API. Check the network and try again.",
            repr(e),
        ) from e

    if not statistics or statistics.get("hiddenSubscriberCount"):
        logger.info(f"No public subscriber count for channel {channel_id}")
        return {}

    try:
        return {"subscribers": int(statistics["subscriberCount"])}
    except (KeyError, TypeError, ValueError):
        logger.warning(f"Unreadable subscriberCount for channel {channel_id}: {statistics.get('subscriberCount')!r}")
        return {}
