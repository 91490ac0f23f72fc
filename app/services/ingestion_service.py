"""
YouTube ingestion: fetch -> normalize -> write, once per "connect account"
action (and from the cron re-sync). Every failure surfaces as an
IngestionError; an account without history in the window is a success with
zero documents written.
"""
from datetime import datetime
from typing import Optional

from beanie import PydanticObjectId
from bson.errors import InvalidId
from pymongo.errors import PyMongoError

from app.models.social_account import SocialAccount
from app.services import metrics_fetcher
from app.services.metrics_normalizer import normalize_report
from app.services.timeseries_writer import TimeSeriesWriter, get_timeseries_writer
from app.utils.errors import IngestionError, MissingParametersError
from app.utils.logger import logger


async def mark_account_synced(social_account_id: str):
    """Best effort: the run already committed, a failed stamp only logs."""
    try:
        account = await SocialAccount.get(PydanticObjectId(social_account_id))
        if account:
            account.last_synced_at = datetime.utcnow()
            await account.save()
    except (InvalidId, PyMongoError) as e:
        logger.warning(f"Could not stamp lastSyncedAt on account {social_account_id}: {e}")


async def fetch_initial_youtube_stats(
    user_id: str,
    social_account_id: str,
    access_token: str,
    youtube_channel_id: str,
    writer: Optional[TimeSeriesWriter] = None,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> dict:
    params = {
        "userId": user_id,
        "socialAccountId": social_account_id,
        "accessToken": access_token,
        "youtubeChannelId": youtube_channel_id,
    }
    missing = [name for name, value in params.items() if not value]
    if missing:
        logger.error(f"fetchInitialYouTubeStats missing parameters: {missing}")
        raise MissingParametersError(missing)

    logger.info(
        f"fetchInitialYouTubeStats called for user {user_id}, account {social_account_id}, "
        f"channel {youtube_channel_id}"
    )

    try:
        if not start_date or not end_date:
            start_date, end_date = metrics_fetcher.default_window()

        report = await metrics_fetcher.fetch_daily_metrics(
            youtube_channel_id, access_token, start_date, end_date
        )
        if report.is_empty:
            logger.info(f"No YouTube analytics rows for channel {youtube_channel_id} in {start_date}..{end_date}")
            written = 0
        else:
            days = normalize_report(report)

            # Subscriber total is a point-in-time figure, recorded on the last day of the window
            statistics = await metrics_fetcher.fetch_channel_statistics(youtube_channel_id, access_token)
            if "subscribers" in statistics:
                days.setdefault(end_date, {})["subscribers"] = statistics["subscribers"]

            writer = writer or get_timeseries_writer()
            written = await writer.write(user_id, social_account_id, "youtube", days)
    except IngestionError:
        raise
    except Exception as e:
        logger.error(f"Error in fetchInitialYouTubeStats: {e}", exc_info=True)
        raise IngestionError("An unexpected error occurred while ingesting YouTube stats.", str(e)) from e

    await mark_account_synced(social_account_id)
    if not written:
        return {
            "success": True,
            "message": "No YouTube analytics data available for this period.",
            "documentsWritten": 0,
        }
    return {
        "success": True,
        "message": f"Successfully fetched and stored {written} days of YouTube stats.",
        "documentsWritten": written,
    }
