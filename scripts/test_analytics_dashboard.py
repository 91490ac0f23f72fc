import unittest
from unittest.mock import MagicMock, patch, AsyncMock
from types import SimpleNamespace
from datetime import date
import sys
import os

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.services.analytics_dashboard_service import get_dashboard_summary
from app.services.analytics_service import (
    build_chart_series,
    get_platform_dashboard,
    rank_posts,
    resolve_range,
    summarize_time_series,
)


class TestSummary(unittest.TestCase):

    def test_average_view_duration_is_weighted(self):
        points = [
            {"date": "2024-01-01", "views": 100, "watchTimeMinutes": 100},
            {"date": "2024-01-02", "views": 10, "watchTimeMinutes": 50},
        ]
        summary = summarize_time_series(points)

        self.assertEqual(summary["views"], 110)
        self.assertEqual(summary["watchTimeMinutes"], 150)
        self.assertAlmostEqual(summary["averageViewDuration"], 150 * 60 / 110)
        # Mean of the per-day averages (60s and 300s) would be 180s
        self.assertNotAlmostEqual(summary["averageViewDuration"], 180)

    def test_subscribers_are_latest_not_summed(self):
        points = [
            {"date": "2024-01-01", "subscribers": 100, "views": 5},
            {"date": "2024-01-03", "views": 7},
            {"date": "2024-01-02", "subscribers": 110, "views": 3},
        ]
        summary = summarize_time_series(points)

        self.assertEqual(summary["subscribers"], 110)
        self.assertEqual(summary["views"], 15)
        self.assertEqual(summary["days"], 3)

    def test_no_rows_is_zeroed(self):
        summary = summarize_time_series([])
        self.assertEqual(summary["views"], 0)
        self.assertEqual(summary["netSubscribers"], 0)
        self.assertIsNone(summary["subscribers"])
        self.assertIsNone(summary["averageViewDuration"])
        self.assertEqual(summary["days"], 0)

    def test_no_views_means_no_average_duration(self):
        summary = summarize_time_series([{"date": "2024-01-01", "followers": 50}])
        self.assertIsNone(summary["averageViewDuration"])
        self.assertEqual(summary["followers"], 50)


class TestChartAndRanking(unittest.TestCase):

    def test_chart_is_chronological_and_labelled(self):
        points = [
            {"date": "2024-01-02", "views": 3},
            {"date": "2024-01-01", "views": 1, "subscribers": 9},
            {"date": "2024-01-03", "likes": 4},
        ]
        series = build_chart_series(points, ["views", "subscribers"])

        self.assertEqual([p["date"] for p in series], ["2024-01-01", "2024-01-02"])
        self.assertEqual(series[0]["label"], "Jan 01")
        self.assertEqual(series[0]["subscribers"], 9)
        self.assertIsNone(series[1]["subscribers"])

    def test_ranking_is_descending_and_stable(self):
        posts = [
            {"id": "a", "views": 10},
            {"id": "b", "views": 20},
            {"id": "c", "views": 10},
            {"id": "d", "views": None},
        ]
        ranked = rank_posts(posts, metric="views", limit=None)

        self.assertEqual([p["id"] for p in ranked], ["b", "a", "c", "d"])
        self.assertEqual(ranked[0]["views"], 20)
        self.assertIsNone(ranked[3]["views"])
        self.assertEqual([p["id"] for p in rank_posts(posts, limit=2)], ["b", "a"])

    def test_ranking_by_unknown_metric_keeps_order(self):
        posts = [{"id": "a", "likes": 1}, {"id": "b", "likes": 5}]
        self.assertEqual([p["id"] for p in rank_posts(posts, metric="shares")], ["a", "b"])

    def test_range_swaps_reversed_dates(self):
        start, end = resolve_range(date(2024, 2, 1), date(2024, 1, 1))
        self.assertEqual((start, end), (date(2024, 1, 1), date(2024, 2, 1)))


def stub_accounts(mock_account, accounts=None, error=None):
    to_list = AsyncMock(return_value=accounts or [], side_effect=error)
    mock_account.find.return_value.sort.return_value.to_list = to_list
    return to_list


def connected(account_id, platform="youtube"):
    account = MagicMock()
    account.id = account_id
    account.platform = platform
    account.public_view.return_value = {"id": account_id, "platform": platform}
    return account


class TestPageStates(unittest.IsolatedAsyncioTestCase):

    def user(self, premium=False):
        return SimpleNamespace(id="u1", is_premium=premium)

    @patch("app.services.analytics_service.SocialAccount")
    async def test_tier_gate_before_connectivity(self, mock_account):
        to_list = stub_accounts(mock_account)

        result = await get_platform_dashboard(self.user(), "linkedin")

        self.assertEqual(result["state"], "upgrade_required")
        to_list.assert_not_awaited()

    @patch("app.services.analytics_service.SocialAccount")
    async def test_connect_account_when_missing(self, mock_account):
        stub_accounts(mock_account)

        result = await get_platform_dashboard(self.user(premium=True), "twitter")
        self.assertEqual(result["state"], "connect_account")

        result = await get_platform_dashboard(self.user(), "youtube")
        self.assertEqual(result["state"], "connect_account")

    @patch("app.services.analytics_service.SocialAccount")
    async def test_query_failure_is_error_state(self, mock_account):
        stub_accounts(mock_account, error=RuntimeError("connection reset"))

        result = await get_platform_dashboard(self.user(), "youtube")

        self.assertEqual(result["state"], "error")
        self.assertNotIn("connection reset", result["message"])

    @patch("app.services.analytics_service.load_account_data", new_callable=AsyncMock)
    @patch("app.services.analytics_service.SocialAccount")
    async def test_ready_with_no_rows(self, mock_account, mock_load):
        stub_accounts(mock_account, [connected("acc1")])
        mock_load.return_value = ([], [])

        result = await get_platform_dashboard(self.user(), "youtube", date(2024, 1, 1), date(2024, 1, 28))

        self.assertEqual(result["state"], "ready")
        self.assertEqual(result["summary"]["views"], 0)
        self.assertEqual(result["chart"], [])
        self.assertEqual(result["topContent"], [])
        self.assertEqual(result["range"], {"start": "2024-01-01", "end": "2024-01-28"})
        mock_load.assert_awaited_once_with("u1", "acc1", date(2024, 1, 1), date(2024, 1, 28))

    @patch("app.services.analytics_service.load_account_data", new_callable=AsyncMock)
    @patch("app.services.analytics_service.SocialAccount")
    async def test_earliest_account_by_default(self, mock_account, mock_load):
        stub_accounts(mock_account, [connected("acc1"), connected("acc2")])
        mock_load.return_value = ([], [])

        result = await get_platform_dashboard(self.user(premium=True), "youtube")

        self.assertEqual(result["account"]["id"], "acc1")
        self.assertEqual([a["id"] for a in result["accounts"]], ["acc1", "acc2"])
        mock_account.find.return_value.sort.assert_called_once_with("+connectedAt")

    @patch("app.services.analytics_service.load_account_data", new_callable=AsyncMock)
    @patch("app.services.analytics_service.SocialAccount")
    async def test_account_id_selects_account(self, mock_account, mock_load):
        stub_accounts(mock_account, [connected("acc1"), connected("acc2")])
        mock_load.return_value = ([], [])

        result = await get_platform_dashboard(self.user(premium=True), "youtube", account_id="acc2")
        self.assertEqual(result["account"]["id"], "acc2")
        self.assertEqual(mock_load.await_args.args[1], "acc2")

        result = await get_platform_dashboard(self.user(premium=True), "youtube", account_id="acc9")
        self.assertEqual(result["state"], "error")


class TestOverview(unittest.IsolatedAsyncioTestCase):

    def user(self):
        return SimpleNamespace(id="u1", is_premium=False)

    @patch("app.services.analytics_dashboard_service.load_account_data", new_callable=AsyncMock)
    @patch("app.services.analytics_dashboard_service.SocialAccount")
    async def test_audience_uses_latest_values(self, mock_account, mock_load):
        mock_account.find.return_value.to_list = AsyncMock(return_value=[
            connected("yt1", "youtube"),
            connected("ig1", "instagram"),
        ])
        series = {
            "yt1": [
                {"date": "2024-01-02", "views": 600, "likes": 25, "comments": 5, "subscribers": 120},
                {"date": "2024-01-01", "views": 400, "likes": 15, "comments": 5, "subscribers": 100},
            ],
            "ig1": [
                {"date": "2024-01-01", "likes": 20, "followers": 40},
                {"date": "2024-01-02", "likes": 10, "followers": 50},
            ],
        }
        mock_load.side_effect = lambda user_id, account_id, start, end: (series[account_id], [])

        result = await get_dashboard_summary(self.user(), date(2024, 1, 1), date(2024, 1, 2))

        self.assertEqual(result["state"], "ready")
        stats = result["stats"]
        self.assertEqual(stats["totalFollowers"], 170)
        self.assertEqual(stats["totalEngagement"], 80)
        self.assertEqual(stats["totalViews"], 1000)
        self.assertEqual(stats["engagementRate"], 8.0)
        self.assertEqual(result["platformDistribution"], [
            {"platform": "instagram", "value": 30},
            {"platform": "youtube", "value": 50},
        ])

    @patch("app.services.analytics_dashboard_service.load_account_data", new_callable=AsyncMock)
    @patch("app.services.analytics_dashboard_service.SocialAccount")
    async def test_one_failing_account_is_reported(self, mock_account, mock_load):
        mock_account.find.return_value.to_list = AsyncMock(return_value=[
            connected("yt1", "youtube"),
            connected("ig1", "instagram"),
        ])
        mock_load.side_effect = [RuntimeError("cursor killed"), ([{"date": "2024-01-01", "followers": 7}], [])]

        result = await get_dashboard_summary(self.user(), date(2024, 1, 1), date(2024, 1, 2))

        self.assertEqual(result["state"], "ready")
        self.assertEqual(result["stats"]["totalFollowers"], 7)
        self.assertEqual(result["accounts"][0]["error"], "Failed to load data")
        self.assertIsNone(result["stats"]["engagementRate"])

    @patch("app.services.analytics_dashboard_service.SocialAccount")
    async def test_no_accounts_is_connect_account(self, mock_account):
        mock_account.find.return_value.to_list = AsyncMock(return_value=[])

        result = await get_dashboard_summary(self.user())

        self.assertEqual(result["state"], "connect_account")

    @patch("app.services.analytics_dashboard_service.SocialAccount")
    async def test_query_failure_is_error_state(self, mock_account):
        mock_account.find.return_value.to_list = AsyncMock(side_effect=RuntimeError("no primary"))

        result = await get_dashboard_summary(self.user())

        self.assertEqual(result["state"], "error")
        self.assertNotIn("no primary", result["message"])


if __name__ == "__main__":
    unittest.main()
