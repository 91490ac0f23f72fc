import unittest
from unittest.mock import patch, AsyncMock
from types import SimpleNamespace
from datetime import datetime, timedelta
import sys
import os

import httpx
import pymongo
from cryptography.fernet import Fernet

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.core.config import settings
from app.models.user import AccountLimits, limits_for_tier
from app.models.oauth_state import OAuthState
from app.services.account_service import check_connection_allowed, disconnect_account
from app.services.channel_resolver import SIGN_IN, resolve_identity, resolve_youtube_channel
from app.services import token_service
from app.utils.errors import AccountLimitError, PremiumRequiredError


def make_user(tier="free", limits=None):
    return SimpleNamespace(
        id="u1",
        subscription_tier=tier,
        account_limits=limits or limits_for_tier(tier),
    )


def make_account(platform, platform_user_id):
    return SimpleNamespace(platform=platform, platform_user_id=platform_user_id)


class TestTierLimits(unittest.TestCase):

    def test_free_tier_limits(self):
        limits = limits_for_tier("free")
        self.assertEqual(limits.model_dump(by_alias=True), {
            "maxInstagram": 1, "maxYoutube": 1, "maxLinkedin": 0, "maxX": 0, "maxTotal": 2,
        })
        self.assertEqual(limits_for_tier("premium").for_platform("twitter"), 5)

    def test_premium_platform_on_free_tier(self):
        with self.assertRaises(PremiumRequiredError):
            check_connection_allowed(make_user(), [], "linkedin", "li-1")
        with self.assertRaises(PremiumRequiredError):
            check_connection_allowed(make_user(), [], "twitter", "tw-1")

    def test_premium_tier_allows_linkedin(self):
        self.assertIsNone(check_connection_allowed(make_user("premium"), [], "linkedin", "li-1"))

    def test_per_platform_limit(self):
        accounts = [make_account("youtube", "UC1")]
        with self.assertRaises(AccountLimitError) as ctx:
            check_connection_allowed(make_user(), accounts, "youtube", "UC2")
        self.assertNotIsInstance(ctx.exception, PremiumRequiredError)

    def test_reconnect_does_not_count_twice(self):
        existing = make_account("youtube", "UC1")
        self.assertIs(check_connection_allowed(make_user(), [existing], "youtube", "UC1"), existing)

    def test_total_limit(self):
        limits = AccountLimits(maxInstagram=5, maxYoutube=5, maxLinkedin=0, maxX=0, maxTotal=2)
        accounts = [make_account("youtube", "UC1"), make_account("instagram", "ig1")]
        with self.assertRaises(AccountLimitError):
            check_connection_allowed(make_user(limits=limits), accounts, "youtube", "UC2")

    def test_unknown_platform(self):
        with self.assertRaises(ValueError):
            check_connection_allowed(make_user(), [], "myspace", "x")


class TestTokenService(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        patcher = patch.object(settings, "TOKEN_ENCRYPTION_KEY", Fernet.generate_key().decode())
        patcher.start()
        self.addCleanup(patcher.stop)

    def make_account(self, platform="youtube", expires_in=3600, refresh=True):
        account = SimpleNamespace(
            id="acc1",
            platform=platform,
            access_token_enc=None,
            refresh_token_enc=None,
            token_expiry=None,
            scope=None,
            save=AsyncMock(),
        )
        token_data = {"access_token": "access-1", "expires_in": expires_in, "scope": "yt-analytics.readonly"}
        if refresh:
            token_data["refresh_token"] = "refresh-1"
        token_service.apply_token_response(account, token_data)
        return account

    def test_round_trip(self):
        encrypted = token_service.encrypt_token("secret-token")
        self.assertNotEqual(encrypted, "secret-token")
        self.assertEqual(token_service.decrypt_token(encrypted), "secret-token")

    async def test_valid_token_is_decrypted(self):
        account = self.make_account()
        self.assertNotIn("access-1", account.access_token_enc)
        self.assertEqual(await token_service.ensure_valid_access_token(account), "access-1")
        account.save.assert_not_awaited()

    async def test_expired_google_token_is_refreshed(self):
        account = self.make_account()
        account.token_expiry = datetime.utcnow() - timedelta(minutes=1)

        refresh = AsyncMock(return_value={"access_token": "access-2", "expires_in": 3600})
        with patch("app.platforms.youtube.refresh_access_token", new=refresh):
            token = await token_service.ensure_valid_access_token(account)

        self.assertEqual(token, "access-2")
        self.assertEqual(refresh.await_args.kwargs["refresh_token"], "refresh-1")
        self.assertGreater(account.token_expiry, datetime.utcnow())
        account.save.assert_awaited_once()

    async def test_expired_token_without_refresh(self):
        account = self.make_account(platform="twitter", refresh=False)
        account.token_expiry = datetime.utcnow() - timedelta(minutes=1)
        with self.assertRaises(ValueError):
            await token_service.ensure_valid_access_token(account)


class TestChannelResolver(unittest.IsolatedAsyncioTestCase):

    async def test_channel_identity(self):
        channel = {
            "id": "UCabc",
            "snippet": {"title": "My Channel", "thumbnails": {"default": {"url": "http://img/1.jpg"}}},
        }
        with patch("app.platforms.youtube.get_my_channel", new=AsyncMock(return_value=channel)):
            identity = await resolve_youtube_channel("tok")

        self.assertEqual(identity.platform_user_id, "UCabc")
        self.assertEqual(identity.username, "My Channel")
        self.assertEqual(identity.profile_picture_url, "http://img/1.jpg")
        self.assertFalse(identity.is_fallback)

    async def test_no_channel_falls_back_to_sign_in(self):
        profile = {"sub": "1090", "name": "Jo", "picture": "http://img/jo.jpg"}
        with patch("app.platforms.youtube.get_my_channel", new=AsyncMock(return_value=None)):
            identity = await resolve_youtube_channel("tok", sign_in_profile=profile)

        self.assertEqual(identity.platform_user_id, "1090")
        self.assertEqual(identity.source, SIGN_IN)
        self.assertTrue(identity.is_fallback)

    async def test_lookup_failure_falls_back_to_sign_in(self):
        with patch("app.platforms.youtube.get_my_channel", new=AsyncMock(side_effect=httpx.ConnectError("down"))), \
             patch("app.platforms.youtube.get_userinfo", new=AsyncMock(return_value={"sub": "1090", "email": "jo@example.com"})):
            identity = await resolve_identity("youtube", "tok")

        self.assertTrue(identity.is_fallback)
        self.assertEqual(identity.username, "jo@example.com")

    @patch("httpx.AsyncClient")
    async def test_twitter_identity(self, mock_client_cls):
        mock_client = AsyncMock()
        mock_client_cls.return_value.__aenter__.return_value = mock_client
        response = httpx.Response(
            200,
            json={"data": {"id": "42", "username": "omni", "profile_image_url": "http://img/x.jpg"}},
            request=httpx.Request("GET", "https://api.twitter.com/2/users/me"),
        )
        mock_client.get.return_value = response

        identity = await resolve_identity("twitter", "tok")

        self.assertEqual((identity.platform, identity.platform_user_id, identity.username), ("twitter", "42", "omni"))
        self.assertFalse(identity.is_fallback)

    async def test_unsupported_platform(self):
        with self.assertRaises(ValueError):
            await resolve_identity("myspace", "tok")


class TestDisconnect(unittest.IsolatedAsyncioTestCase):

    ACCOUNT_ID = "65a0c0ffee0000000000abcd"

    def setUp(self):
        self.user = make_user()

    def stub(self, mock_account, mock_series, mock_post, account, remaining=0):
        mock_account.find_one = AsyncMock(return_value=account)
        mock_account.find.return_value.count = AsyncMock(return_value=remaining)
        mock_series.find.return_value.delete = AsyncMock()
        mock_post.find.return_value.delete = AsyncMock()

    @patch("app.services.account_service.Post")
    @patch("app.services.account_service.AnalyticsTimeSeries")
    @patch("app.services.account_service.SocialAccount")
    async def test_cascade_deletes_series_posts_and_account(self, mock_account, mock_series, mock_post):
        account = SimpleNamespace(platform="youtube", delete=AsyncMock())
        self.stub(mock_account, mock_series, mock_post, account, remaining=2)

        remaining = await disconnect_account(self.user, self.ACCOUNT_ID)

        self.assertEqual(remaining, 2)
        mock_series.find.return_value.delete.assert_awaited_once()
        mock_post.find.return_value.delete.assert_awaited_once()
        account.delete.assert_awaited_once()

    @patch("app.services.account_service.Post")
    @patch("app.services.account_service.AnalyticsTimeSeries")
    @patch("app.services.account_service.SocialAccount")
    async def test_account_of_another_user(self, mock_account, mock_series, mock_post):
        self.stub(mock_account, mock_series, mock_post, None)

        self.assertIsNone(await disconnect_account(self.user, self.ACCOUNT_ID))

        mock_series.find.return_value.delete.assert_not_awaited()
        mock_post.find.return_value.delete.assert_not_awaited()

    @patch("app.services.account_service.SocialAccount")
    async def test_malformed_id(self, mock_account):
        mock_account.find_one = AsyncMock()

        self.assertIsNone(await disconnect_account(self.user, "not-an-object-id"))
        mock_account.find_one.assert_not_awaited()


class TestOAuthState(unittest.TestCase):

    def test_unfinished_states_expire(self):
        ttl = [
            index.document for index in OAuthState.Settings.indexes
            if isinstance(index, pymongo.IndexModel) and "expireAfterSeconds" in index.document
        ]
        self.assertEqual(len(ttl), 1)
        self.assertEqual(dict(ttl[0]["key"]), {"created_at": 1})
        self.assertEqual(ttl[0]["expireAfterSeconds"], 600)


if __name__ == "__main__":
    unittest.main()
