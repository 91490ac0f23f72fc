from datetime import datetime
from typing import List, Optional
from beanie import Document
from pydantic import BaseModel, ConfigDict, Field
import pymongo


class PostMetrics(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    likes: int = 0
    comments: int = 0
    shares: Optional[int] = None
    views: Optional[int] = None
    engagement_rate: Optional[float] = Field(None, alias="engagementRate")
    fetched_at: datetime = Field(default_factory=datetime.utcnow, alias="fetchedAt")


class PostAiInsights(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sentiment: Optional[str] = None
    suggestions: Optional[List[str]] = None
    processed_at: datetime = Field(default_factory=datetime.utcnow, alias="processedAt")


class Post(Document):
    user_id: str = Field(alias="userId")
    account_id: str = Field(alias="accountId")
    platform: str
    platform_post_id: str = Field(alias="platformPostId")
    published_at: datetime = Field(alias="publishedAt")
    type: str = "text"  # image, video, text, short, link, carousel
    text_content: Optional[str] = Field(None, alias="textContent")
    media_urls: List[str] = Field(default_factory=list, alias="mediaUrls")
    permalink: Optional[str] = None
    latest_metrics: Optional[PostMetrics] = Field(None, alias="latestMetrics")
    ai_insights: Optional[PostAiInsights] = Field(None, alias="aiInsights")

    def as_row(self) -> dict:
        """Flat row consumed by the aggregator's ranking."""
        metrics = self.latest_metrics
        return {
            "id": str(self.id),
            "platformPostId": self.platform_post_id,
            "platform": self.platform,
            "type": self.type,
            "publishedAt": self.published_at,
            "textContent": self.text_content,
            "thumbnailUrl": self.media_urls[0] if self.media_urls else None,
            "permalink": self.permalink,
            "likes": metrics.likes if metrics else 0,
            "comments": metrics.comments if metrics else 0,
            "shares": metrics.shares if metrics else None,
            "views": metrics.views if metrics else None,
            "engagementRate": metrics.engagement_rate if metrics else None,
        }

    class Settings:
        name = "posts"
        indexes = [
            [("userId", 1), ("accountId", 1), ("publishedAt", -1)],
            pymongo.IndexModel(
                [("accountId", 1), ("platform", 1), ("platformPostId", 1)],
                unique=True,
            ),
        ]
