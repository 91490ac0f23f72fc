from datetime import date
from typing import Optional

from app.models.social_account import SocialAccount
from app.models.user import User
from app.services.analytics_service import load_account_data, resolve_range, summarize_time_series
from app.utils.logger import logger

async def get_dashboard_summary(user: User, start: Optional[date] = None, end: Optional[date] = None):
    """
    Cross-platform overview for the main dashboard:
    - Total Followers (latest followers/subscribers per account)
    - Total Engagement (likes + comments + shares over the range)
    - Engagement Rate (engagement / views)
    - Platform distribution of engagement
    """
    start, end = resolve_range(start, end)

    try:
        accounts = await SocialAccount.find(SocialAccount.user_id == user.id).to_list()
    except Exception as e:
        logger.error(f"Failed to load accounts for overview of user {user.id}: {e}")
        return {"state": "error", "message": "Failed to load dashboard data."}

    if not accounts:
        return {"state": "connect_account", "message": "Connect a social account to see your dashboard."}

    total_followers = 0
    total_engagement = 0
    total_views = 0
    distribution = {}
    per_account = []

    for account in accounts:
        try:
            points, _ = await load_account_data(str(user.id), str(account.id), start, end)
        except Exception as e:
            logger.error(f"Failed to load time series for account {account.id}: {e}")
            per_account.append({"account": account.public_view(), "error": "Failed to load data"})
            continue

        summary = summarize_time_series(points)
        audience = summary["subscribers"] if summary["subscribers"] is not None else summary["followers"]
        engagement = (summary["likes"] or 0) + (summary["comments"] or 0) + (summary["shares"] or 0)

        total_followers += audience or 0
        total_engagement += engagement
        total_views += summary["views"] or 0
        distribution[account.platform] = distribution.get(account.platform, 0) + engagement
        per_account.append({"account": account.public_view(), "summary": summary})

    engagement_rate = (total_engagement / total_views * 100) if total_views > 0 else None

    return {
        "state": "ready",
        "range": {"start": start.isoformat(), "end": end.isoformat()},
        "stats": {
            "totalFollowers": total_followers,
            "totalEngagement": total_engagement,
            "engagementRate": engagement_rate,
            "totalViews": total_views,
        },
        "platformDistribution": [
            {"platform": platform, "value": value} for platform, value in sorted(distribution.items())
        ],
        "accounts": per_account,
    }
