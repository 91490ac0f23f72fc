from datetime import datetime
from typing import Optional
from beanie import Document
from pydantic import BaseModel, ConfigDict, Field

# Fields of the metrics bag, in storage (camelCase) form
METRIC_FIELDS = (
    "followers",
    "subscribers",
    "following",
    "views",
    "watchTimeMinutes",
    "watchTimeHours",
    "averageViewDuration",
    "engagement",
    "impressions",
    "reach",
    "profileViews",
    "likes",
    "comments",
    "shares",
    "subscribersGained",
    "subscribersLost",
    "netSubscribers",
)


class TimeSeriesMetrics(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    followers: Optional[float] = None
    subscribers: Optional[float] = None
    following: Optional[float] = None
    views: Optional[float] = None
    watch_time_minutes: Optional[float] = Field(None, alias="watchTimeMinutes")
    watch_time_hours: Optional[float] = Field(None, alias="watchTimeHours")
    average_view_duration: Optional[float] = Field(None, alias="averageViewDuration")
    engagement: Optional[float] = None
    impressions: Optional[float] = None
    reach: Optional[float] = None
    profile_views: Optional[float] = Field(None, alias="profileViews")
    likes: Optional[float] = None
    comments: Optional[float] = None
    shares: Optional[float] = None
    subscribers_gained: Optional[float] = Field(None, alias="subscribersGained")
    subscribers_lost: Optional[float] = Field(None, alias="subscribersLost")
    net_subscribers: Optional[float] = Field(None, alias="netSubscribers")


def timeseries_key(account_id: str, date_str: str) -> str:
    """Deterministic document id: one document per (account, calendar day)."""
    return f"{account_id}:{date_str}"


class AnalyticsTimeSeries(Document):
    id: str
    user_id: str = Field(alias="userId")
    account_id: str = Field(alias="accountId")
    platform: str
    date: str
    timestamp: datetime
    metrics: TimeSeriesMetrics = Field(default_factory=TimeSeriesMetrics)
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    def as_point(self) -> dict:
        """Flat {date, timestamp, <metric>...} dict consumed by the aggregator."""
        point = {"date": self.date, "timestamp": self.timestamp}
        point.update(self.metrics.model_dump(by_alias=True, exclude_none=True))
        return point

    class Settings:
        name = "analytics_time_series"
        indexes = [
            [("accountId", 1), ("timestamp", 1)],
            "userId",
        ]
