"""
Time-Series Writer.

Idempotent write contract: one document per (account, calendar day) with id
"{accountId}:{YYYY-MM-DD}". Each write is an upsert that $sets the dotted
metrics paths it carries, so fields not present in this run are preserved
and fields present are overwritten. All days of one run commit in a single
transaction; operations are sent in chunks inside that transaction.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pymongo import UpdateOne
from pymongo.errors import PyMongoError

from app.core import database
from app.core.config import settings
from app.models.analytics import AnalyticsTimeSeries, timeseries_key
from app.utils.errors import TimeSeriesWriteError
from app.utils.logger import logger


def day_timestamp(date_str: str) -> datetime:
    """UTC midnight of the day (naive, like every other stored datetime)."""
    return datetime.strptime(date_str, "%Y-%m-%d")


def build_upsert(user_id: str, account_id: str, platform: str, date_str: str, metrics: dict, now: datetime) -> UpdateOne:
    fields = {
        "userId": user_id,
        "accountId": account_id,
        "platform": platform,
        "date": date_str,
        "timestamp": day_timestamp(date_str),
        "updatedAt": now,
    }
    for name, value in metrics.items():
        fields[f"metrics.{name}"] = value

    return UpdateOne(
        {"_id": timeseries_key(account_id, date_str)},
        {"$set": fields, "$setOnInsert": {"createdAt": now}},
        upsert=True,
    )


def chunked(items: List, size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


class TimeSeriesWriter:
    def __init__(self, collection, client=None, use_transactions: bool = True, batch_size: int = 500):
        self.collection = collection
        self.client = client
        self.use_transactions = use_transactions and client is not None
        self.batch_size = max(1, batch_size)

    async def write(self, user_id: str, account_id: str, platform: str, days: Dict[str, dict], now: Optional[datetime] = None) -> int:
        """
        Upsert every day in `days` ({YYYY-MM-DD: metrics}). Returns the number
        of days written. Raises TimeSeriesWriteError if the run fails; with
        transactions enabled nothing from the run is visible in that case.
        """
        if not days:
            return 0

        now = now or datetime.utcnow()
        operations = [
            build_upsert(user_id, account_id, platform, day, metrics, now)
            for day, metrics in days.items()
        ]

        try:
            if self.use_transactions:
                async with await self.client.start_session() as session:
                    async with session.start_transaction():
                        for chunk in chunked(operations, self.batch_size):
                            await self.collection.bulk_write(chunk, ordered=True, session=session)
            else:
                logger.warning("Writing time series without a transaction; a failure may leave a partial run")
                for chunk in chunked(operations, self.batch_size):
                    await self.collection.bulk_write(chunk, ordered=True)
        except PyMongoError as e:
            logger.error(f"Time series batch write failed for account {account_id}: {e}")
            raise TimeSeriesWriteError(
                "Failed to store analytics data. No days from this run were saved.",
                str(e),
            ) from e

        logger.info(f"Wrote {len(operations)} time series documents for account {account_id}")
        return len(operations)


def get_timeseries_writer() -> TimeSeriesWriter:
    collection = database.get_collection(AnalyticsTimeSeries.Settings.name)
    return TimeSeriesWriter(
        collection,
        client=database.client,
        use_transactions=settings.MONGODB_TRANSACTIONS,
        batch_size=settings.TIMESERIES_BATCH_SIZE,
    )
