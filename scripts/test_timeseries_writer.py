import unittest
import sys
import os
from datetime import datetime

from pymongo.errors import OperationFailure

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.services.timeseries_writer import TimeSeriesWriter, build_upsert
from app.utils.errors import TimeSeriesWriteError


class FakeCollection:
    """In-memory stand-in applying UpdateOne upserts the way MongoDB does."""

    def __init__(self, fail_on_call=None):
        self.docs = {}
        self.calls = []
        self.fail_on_call = fail_on_call

    def apply(self, op):
        key = op._filter["_id"]
        update = op._doc
        doc = self.docs.get(key)
        if doc is None:
            doc = {"_id": key}
            doc.update(update.get("$setOnInsert", {}))
        for path, value in update["$set"].items():
            target = doc
            parts = path.split(".")
            for part in parts[:-1]:
                target = target.setdefault(part, {})
            target[parts[-1]] = value
        self.docs[key] = doc

    async def bulk_write(self, operations, ordered=True, session=None):
        self.calls.append(len(operations))
        if self.fail_on_call == len(self.calls):
            raise OperationFailure("write conflict")
        if session is not None:
            session.pending.extend(operations)
        else:
            for op in operations:
                self.apply(op)


class FakeTransaction:
    def __init__(self, session):
        self.session = session

    async def __aenter__(self):
        self.session.pending = []
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is None:
            for op in self.session.pending:
                self.session.collection.apply(op)
            self.session.committed = True
        else:
            self.session.aborted = True
        self.session.pending = []
        return False


class FakeSession:
    def __init__(self, collection):
        self.collection = collection
        self.pending = []
        self.committed = False
        self.aborted = False

    def start_transaction(self):
        return FakeTransaction(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeClient:
    def __init__(self, collection):
        self.collection = collection
        self.sessions = []

    async def start_session(self):
        session = FakeSession(self.collection)
        self.sessions.append(session)
        return session


def days_between(first, last, views=10):
    return {f"2024-01-{d:02d}": {"views": views} for d in range(first, last + 1)}


class TestTimeSeriesWriter(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.collection = FakeCollection()
        self.client = FakeClient(self.collection)
        self.writer = TimeSeriesWriter(self.collection, client=self.client, batch_size=500)

    async def test_zero_days_touches_nothing(self):
        written = await self.writer.write("u1", "acc1", "youtube", {})
        self.assertEqual(written, 0)
        self.assertEqual(self.collection.calls, [])
        self.assertEqual(self.client.sessions, [])

    async def test_one_document_per_day(self):
        written = await self.writer.write("u1", "acc1", "youtube", days_between(1, 3))

        self.assertEqual(written, 3)
        self.assertEqual(sorted(self.collection.docs), ["acc1:2024-01-01", "acc1:2024-01-02", "acc1:2024-01-03"])
        doc = self.collection.docs["acc1:2024-01-02"]
        self.assertEqual(doc["userId"], "u1")
        self.assertEqual(doc["accountId"], "acc1")
        self.assertEqual(doc["platform"], "youtube")
        self.assertEqual(doc["date"], "2024-01-02")
        self.assertEqual(doc["timestamp"], datetime(2024, 1, 2))
        self.assertEqual(doc["metrics"], {"views": 10})
        self.assertTrue(self.client.sessions[0].committed)

    async def test_rewrite_merges_metrics(self):
        first = datetime(2024, 2, 1, 8, 0)
        second = datetime(2024, 2, 2, 8, 0)
        await self.writer.write("u1", "acc1", "youtube", {"2024-01-01": {"views": 10, "likes": 2}}, now=first)
        await self.writer.write("u1", "acc1", "youtube", {"2024-01-01": {"views": 15}}, now=second)

        doc = self.collection.docs["acc1:2024-01-01"]
        self.assertEqual(doc["metrics"], {"views": 15, "likes": 2})
        self.assertEqual(doc["createdAt"], first)
        self.assertEqual(doc["updatedAt"], second)

    async def test_overlapping_runs_keep_one_document_per_day(self):
        await self.writer.write("u1", "acc1", "youtube", days_between(1, 3, views=1))
        await self.writer.write("u1", "acc1", "youtube", days_between(2, 4, views=2))

        self.assertEqual(len(self.collection.docs), 4)
        self.assertEqual(self.collection.docs["acc1:2024-01-01"]["metrics"]["views"], 1)
        self.assertEqual(self.collection.docs["acc1:2024-01-03"]["metrics"]["views"], 2)

    async def test_chunks_share_one_transaction(self):
        writer = TimeSeriesWriter(self.collection, client=self.client, batch_size=2)
        written = await writer.write("u1", "acc1", "youtube", days_between(1, 5))

        self.assertEqual(written, 5)
        self.assertEqual(self.collection.calls, [2, 2, 1])
        self.assertEqual(len(self.client.sessions), 1)

    async def test_failed_chunk_rolls_back_whole_run(self):
        collection = FakeCollection(fail_on_call=2)
        client = FakeClient(collection)
        writer = TimeSeriesWriter(collection, client=client, batch_size=2)

        with self.assertRaises(TimeSeriesWriteError) as ctx:
            await writer.write("u1", "acc1", "youtube", days_between(1, 3))

        self.assertEqual(collection.docs, {})
        self.assertTrue(client.sessions[0].aborted)
        self.assertIn("write conflict", ctx.exception.detail)
        self.assertEqual(ctx.exception.code, "aborted")

    async def test_without_transactions_writes_directly(self):
        writer = TimeSeriesWriter(self.collection, client=self.client, use_transactions=False)
        await writer.write("u1", "acc1", "youtube", days_between(1, 2))

        self.assertEqual(len(self.collection.docs), 2)
        self.assertEqual(self.client.sessions, [])

    def test_upsert_sets_dotted_metric_paths(self):
        now = datetime(2024, 1, 5)
        op = build_upsert("u1", "acc1", "youtube", "2024-01-04", {"views": 3, "netSubscribers": -1}, now)

        self.assertEqual(op._filter, {"_id": "acc1:2024-01-04"})
        self.assertTrue(op._upsert)
        self.assertEqual(op._doc["$set"]["metrics.views"], 3)
        self.assertEqual(op._doc["$set"]["metrics.netSubscribers"], -1)
        self.assertNotIn("metrics", op._doc["$set"])
        self.assertEqual(op._doc["$setOnInsert"], {"createdAt": now})


if __name__ == "__main__":
    unittest.main()
