import asyncio
from app.core.config import settings
from app.utils.logger import logger

CANNED_INSIGHTS = {
    "suggestions": [
        "Post more videos on Tuesdays for higher engagement.",
        "Try using shorter captions for Instagram posts this week.",
        "Engage with comments within the first hour of posting.",
        "Consider running a poll on Twitter to boost interaction."
    ],
    "overallSentiment": "positive"  # positive, neutral, negative
}

async def get_ai_insights():
    """
    Placeholder insights: fixed content after an artificial delay until a
    real model is wired in.
    """
    logger.info("getAiInsights called, returning canned insights.")
    await asyncio.sleep(settings.INSIGHTS_DELAY_SECONDS)

    return {
        "success": True,
        "message": "Mock AI insights fetched successfully.",
        "insights": {
            "suggestions": list(CANNED_INSIGHTS["suggestions"]),
            "overallSentiment": CANNED_INSIGHTS["overallSentiment"]
        }
    }
