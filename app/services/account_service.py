from datetime import datetime
from typing import List, Optional

from beanie import PydanticObjectId
from bson.errors import InvalidId

from app.models.analytics import AnalyticsTimeSeries
from app.models.post import Post
from app.models.social_account import PLATFORMS, SocialAccount
from app.models.user import User
from app.services.channel_resolver import ResolvedIdentity
from app.services.token_service import apply_token_response
from app.utils.errors import AccountLimitError, PremiumRequiredError
from app.utils.logger import logger


def check_connection_allowed(user: User, accounts: List[SocialAccount], platform: str, platform_user_id: str) -> Optional[SocialAccount]:
    """
    Enforce tier limits at connection time. Reconnecting an identity that is
    already linked is always allowed and returns that account.
    """
    if platform not in PLATFORMS:
        raise ValueError(f"Platform {platform} not supported")

    existing = next(
        (a for a in accounts if a.platform == platform and a.platform_user_id == platform_user_id),
        None,
    )
    if existing:
        return existing

    limits = user.account_limits
    platform_limit = limits.for_platform(platform)
    if platform_limit <= 0:
        raise PremiumRequiredError(f"{platform.capitalize()} requires a premium subscription")

    on_platform = sum(1 for a in accounts if a.platform == platform)
    if on_platform >= platform_limit:
        raise AccountLimitError(
            f"Maximum {platform_limit} {platform.capitalize()} account(s) allowed on the {user.subscription_tier} tier"
        )
    if len(accounts) >= limits.max_total:
        raise AccountLimitError(
            f"Maximum {limits.max_total} connected accounts allowed on the {user.subscription_tier} tier"
        )
    return None


async def list_accounts(user: User) -> List[SocialAccount]:
    return await SocialAccount.find(SocialAccount.user_id == user.id).sort("+connectedAt").to_list()


async def connect_account(user: User, identity: ResolvedIdentity, token_data: dict) -> SocialAccount:
    accounts = await list_accounts(user)
    account = check_connection_allowed(user, accounts, identity.platform, identity.platform_user_id)
    is_new = account is None

    if is_new:
        account = SocialAccount(
            userId=user.id,
            platform=identity.platform,
            platformUserId=identity.platform_user_id,
            username=identity.username,
        )

    account.username = identity.username
    account.profile_picture_url = identity.profile_picture_url
    account.identity_source = identity.source
    # A sign-in identity is not a content identity; keep it out of ingestion
    account.status = "needs_reauth" if identity.is_fallback else "connected"
    account.connected_at = datetime.utcnow()
    apply_token_response(account, token_data)

    if is_new:
        await account.insert()
        logger.info(f"Connected {identity.platform} account {identity.platform_user_id} for user {user.id}")
    else:
        await account.save()
        logger.info(f"Reconnected {identity.platform} account {identity.platform_user_id} for user {user.id}")
    return account


async def disconnect_account(user: User, account_id: str) -> Optional[int]:
    """
    Delete the account and everything ingested for it. Returns the number of
    accounts left, or None when the account does not belong to the user.
    """
    try:
        oid = PydanticObjectId(account_id)
    except InvalidId:
        return None

    account = await SocialAccount.find_one(
        SocialAccount.id == oid,
        SocialAccount.user_id == user.id,
    )
    if not account:
        return None

    await AnalyticsTimeSeries.find(AnalyticsTimeSeries.account_id == account_id).delete()
    await Post.find(Post.user_id == str(user.id), Post.account_id == account_id).delete()
    await account.delete()
    logger.info(f"Disconnected {account.platform} account {account_id} for user {user.id}")

    return await SocialAccount.find(SocialAccount.user_id == user.id).count()
