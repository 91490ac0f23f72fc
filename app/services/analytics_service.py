"""
Presentation aggregation for the per-platform dashboards.

Time-series points are reduced with pandas. Point-in-time totals
(subscribers, followers) are never summed: the most recent observed value
is reported. Average view duration is recomputed from summed watch time
and summed views, never averaged across days.
"""
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional

import pandas as pd

from app.models.analytics import AnalyticsTimeSeries
from app.models.post import Post
from app.models.social_account import PREMIUM_PLATFORMS, SocialAccount
from app.models.user import User
from app.utils.logger import logger

SUMMABLE = [
    "views",
    "watchTimeMinutes",
    "watchTimeHours",
    "likes",
    "comments",
    "shares",
    "engagement",
    "impressions",
    "reach",
    "profileViews",
    "subscribersGained",
    "subscribersLost",
    "netSubscribers",
]
POINT_IN_TIME = ["subscribers", "followers", "following"]

CHART_METRICS = {
    "youtube": ["views", "watchTimeHours", "subscribers", "netSubscribers"],
    "instagram": ["followers", "impressions", "reach"],
    "linkedin": ["followers", "impressions"],
    "twitter": ["followers", "impressions"],
}

DEFAULT_RANGE_DAYS = 28


def _py(value):
    """numpy scalar -> plain int/float for JSON responses."""
    if value is None or pd.isna(value):
        return None
    value = float(value)
    return int(value) if value.is_integer() else value


def _cell(value):
    if value is None or isinstance(value, (str, list, dict, bool)):
        return value
    if pd.isna(value):
        return None
    if pd.api.types.is_number(value):
        return _py(value)
    return value


def _frame(points: Iterable[dict]) -> pd.DataFrame:
    df = pd.DataFrame(list(points))
    if df.empty:
        return df
    if "date" not in df.columns:
        df["date"] = pd.to_datetime(df["timestamp"]).dt.strftime("%Y-%m-%d")
    return df.sort_values("date", kind="stable").reset_index(drop=True)


def empty_summary() -> dict:
    summary = {name: 0 for name in SUMMABLE}
    summary.update({name: None for name in POINT_IN_TIME})
    summary["averageViewDuration"] = None
    summary["days"] = 0
    return summary


def summarize_time_series(points: Iterable[dict]) -> dict:
    df = _frame(points)
    if df.empty:
        return empty_summary()

    summary = {}
    for name in SUMMABLE:
        summary[name] = _py(df[name].sum()) if name in df.columns else 0

    for name in POINT_IN_TIME:
        observed = df[name].dropna() if name in df.columns else pd.Series(dtype=float)
        summary[name] = _py(observed.iloc[-1]) if not observed.empty else None

    total_views = summary["views"] or 0
    total_minutes = summary["watchTimeMinutes"] or 0
    summary["averageViewDuration"] = (total_minutes * 60 / total_views) if total_views > 0 else None
    summary["days"] = int(len(df))
    return summary


def build_chart_series(points: Iterable[dict], metrics: List[str]) -> List[dict]:
    """Chronological chart points; days carrying none of `metrics` are skipped."""
    df = _frame(points)
    if df.empty:
        return []

    present = [m for m in metrics if m in df.columns]
    if not present:
        return []
    df = df.dropna(subset=present, how="all")

    series = []
    for _, row in df.iterrows():
        point = {
            "date": row["date"],
            "label": datetime.strptime(row["date"], "%Y-%m-%d").strftime("%b %d"),
        }
        for m in metrics:
            point[m] = _py(row[m]) if m in present else None
        series.append(point)
    return series


def rank_posts(posts: Iterable[dict], metric: str = "views", limit: Optional[int] = 10) -> List[dict]:
    """Top content by `metric`, descending; ties keep their original order."""
    df = pd.DataFrame(list(posts))
    if df.empty:
        return []

    key = df[metric] if metric in df.columns else pd.Series(0, index=df.index)
    df["_rank"] = -pd.to_numeric(key, errors="coerce").fillna(0)
    df = df.sort_values("_rank", kind="stable").drop(columns="_rank")
    if limit:
        df = df.head(limit)

    return [{k: _cell(v) for k, v in record.items()} for record in df.to_dict(orient="records")]


def resolve_range(start: Optional[date] = None, end: Optional[date] = None):
    end = end or date.today()
    start = start or (end - timedelta(days=DEFAULT_RANGE_DAYS))
    if start > end:
        start, end = end, start
    return start, end


def build_dashboard(platform: str, account: dict, points: List[dict], posts: List[dict], start: date, end: date, metric: str = "views", limit: int = 10) -> dict:
    return {
        "state": "ready",
        "platform": platform,
        "range": {"start": start.isoformat(), "end": end.isoformat()},
        "account": account,
        "summary": summarize_time_series(points),
        "chart": build_chart_series(points, CHART_METRICS.get(platform, ["followers"])),
        "topContent": rank_posts(posts, metric=metric, limit=limit),
        "postCount": len(posts),
    }


async def load_account_data(user_id: str, account_id: str, start: date, end: date):
    range_start = datetime.combine(start, time.min)
    range_end = datetime.combine(end, time.max)

    series = await AnalyticsTimeSeries.find(
        AnalyticsTimeSeries.account_id == account_id,
        AnalyticsTimeSeries.timestamp >= range_start,
        AnalyticsTimeSeries.timestamp <= range_end,
    ).sort("+timestamp").to_list()

    posts = await Post.find(
        Post.user_id == user_id,
        Post.account_id == account_id,
        Post.published_at >= range_start,
        Post.published_at <= range_end,
    ).sort("-publishedAt").to_list()

    return [ts.as_point() for ts in series], [p.as_row() for p in posts]


async def get_platform_dashboard(user: User, platform: str, start: Optional[date] = None, end: Optional[date] = None, metric: str = "views", limit: int = 10, account_id: Optional[str] = None) -> dict:
    """
    Page data for one platform. With several accounts on the platform,
    `account_id` picks one; otherwise the earliest connected is shown.
    """
    start, end = resolve_range(start, end)

    # Tier gate first: a free user sees the upgrade prompt, not a connect prompt
    if platform in PREMIUM_PLATFORMS and not user.is_premium:
        return {"state": "upgrade_required", "platform": platform, "message": f"{platform.capitalize()} analytics require a premium subscription."}

    try:
        accounts = await SocialAccount.find(
            SocialAccount.user_id == user.id,
            SocialAccount.platform == platform,
        ).sort("+connectedAt").to_list()
        if not accounts:
            return {"state": "connect_account", "platform": platform, "message": f"Connect a {platform.capitalize()} account to see analytics."}

        if account_id:
            account = next((a for a in accounts if str(a.id) == account_id), None)
            if account is None:
                return {"state": "error", "platform": platform, "message": f"{platform.capitalize()} account {account_id} not found."}
        else:
            account = accounts[0]

        points, posts = await load_account_data(str(user.id), str(account.id), start, end)
    except Exception as e:
        logger.error(f"Analytics query failed for user {user.id} on {platform}: {e}")
        return {"state": "error", "platform": platform, "message": f"Failed to load {platform} data."}

    dashboard = build_dashboard(platform, account.public_view(), points, posts, start, end, metric=metric, limit=limit)
    dashboard["accounts"] = [a.public_view() for a in accounts]
    return dashboard
