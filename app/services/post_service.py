from datetime import datetime
from typing import List, Optional

from beanie.operators import Set
from pydantic import BaseModel, ConfigDict, Field

from app.models.post import Post, PostMetrics
from app.models.social_account import SocialAccount
from app.utils.logger import logger


class PostSnapshot(BaseModel):
    """One post as reported by a platform, with its current metrics."""
    model_config = ConfigDict(populate_by_name=True)

    platform_post_id: str = Field(alias="platformPostId")
    published_at: datetime = Field(alias="publishedAt")
    type: str = "text"
    text_content: Optional[str] = Field(None, alias="textContent")
    media_urls: List[str] = Field(default_factory=list, alias="mediaUrls")
    permalink: Optional[str] = None
    latest_metrics: PostMetrics = Field(default_factory=PostMetrics, alias="latestMetrics")


def engagement_rate(metrics: PostMetrics) -> Optional[float]:
    """(likes + comments + shares) / views, as a percentage."""
    if not metrics.views:
        return None
    interactions = metrics.likes + metrics.comments + (metrics.shares or 0)
    return round(interactions / metrics.views * 100, 2)


async def upsert_post(account: SocialAccount, snapshot: PostSnapshot):
    """
    platformPostId is unique per platform per account: insert the post the
    first time it is seen, afterwards replace its content and latest metrics.
    """
    if snapshot.latest_metrics.engagement_rate is None:
        snapshot.latest_metrics.engagement_rate = engagement_rate(snapshot.latest_metrics)

    account_id = str(account.id)
    fields = snapshot.model_dump(by_alias=True, exclude={"platform_post_id"})
    on_insert = Post(
        userId=str(account.user_id),
        accountId=account_id,
        platform=account.platform,
        platformPostId=snapshot.platform_post_id,
        **fields,
    )

    await Post.find_one(
        Post.account_id == account_id,
        Post.platform == account.platform,
        Post.platform_post_id == snapshot.platform_post_id,
    ).upsert(Set(fields), on_insert=on_insert)


async def upsert_posts(account: SocialAccount, snapshots: List[PostSnapshot]) -> int:
    for snapshot in snapshots:
        await upsert_post(account, snapshot)
    logger.info(f"Upserted {len(snapshots)} posts for account {account.id}")
    return len(snapshots)
