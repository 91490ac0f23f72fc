"""
Channel Resolver.

Maps the identity returned by a sign-in provider to the content-owner
identity used for metrics queries. For YouTube the Google account and the
channel differ, so a second lookup against channels?mine=true is made.
"""
from dataclasses import dataclass
from typing import Optional

import httpx

from app.platforms import instagram, linkedin, twitter, youtube
from app.utils.logger import logger

CHANNEL = "channel"
SIGN_IN = "sign_in"


@dataclass
class ResolvedIdentity:
    platform: str
    platform_user_id: str
    username: str
    profile_picture_url: Optional[str] = None
    # CHANNEL when the content identity was found, SIGN_IN on fallback
    source: str = CHANNEL

    @property
    def is_fallback(self) -> bool:
        return self.source == SIGN_IN


def _thumbnail(snippet: dict) -> Optional[str]:
    thumbs = snippet.get("thumbnails") or {}
    for size in ("high", "medium", "default"):
        if size in thumbs:
            return thumbs[size].get("url")
    return None


async def resolve_youtube_channel(access_token: str, sign_in_profile: Optional[dict] = None) -> ResolvedIdentity:
    """
    Look up the caller's own channel. On lookup failure or when the account
    owns no channel, fall back to the Google sign-in identity and flag the
    result so callers do not treat it as a queryable channel id.
    """
    try:
        channel = await youtube.get_my_channel(access_token)
    except httpx.HTTPError as e:
        logger.warning(f"YouTube channel lookup failed, falling back to sign-in identity: {e}")
        channel = None

    if channel:
        snippet = channel.get("snippet", {})
        return ResolvedIdentity(
            platform="youtube",
            platform_user_id=channel["id"],
            username=snippet.get("title") or snippet.get("customUrl") or channel["id"],
            profile_picture_url=_thumbnail(snippet),
            source=CHANNEL,
        )

    if sign_in_profile is None:
        sign_in_profile = await youtube.get_userinfo(access_token)

    logger.warning(
        f"No YouTube channel for Google account {sign_in_profile.get('sub')}; "
        "connecting with sign-in identity"
    )
    return ResolvedIdentity(
        platform="youtube",
        platform_user_id=sign_in_profile.get("sub") or sign_in_profile.get("id", ""),
        username=sign_in_profile.get("name") or sign_in_profile.get("email") or "YouTube user",
        profile_picture_url=sign_in_profile.get("picture"),
        source=SIGN_IN,
    )


async def resolve_identity(platform: str, access_token: str) -> ResolvedIdentity:
    if platform == "youtube":
        return await resolve_youtube_channel(access_token)

    if platform == "instagram":
        ig = await instagram.get_business_account(access_token)
        if ig:
            return ResolvedIdentity(
                platform="instagram",
                platform_user_id=ig["id"],
                username=ig.get("username") or ig["id"],
                profile_picture_url=ig.get("profile_picture_url"),
            )
        me = await instagram.get_me(access_token)
        picture = (me.get("picture") or {}).get("data", {}).get("url")
        return ResolvedIdentity(
            platform="instagram",
            platform_user_id=me["id"],
            username=me.get("name") or me["id"],
            profile_picture_url=picture,
            source=SIGN_IN,
        )

    if platform == "linkedin":
        info = await linkedin.get_userinfo(access_token)
        return ResolvedIdentity(
            platform="linkedin",
            platform_user_id=info["sub"],
            username=info.get("name") or info["sub"],
            profile_picture_url=info.get("picture"),
        )

    if platform == "twitter":
        data = await twitter.get_me(access_token)
        return ResolvedIdentity(
            platform="twitter",
            platform_user_id=data["id"],
            username=data.get("username") or data["id"],
            profile_picture_url=data.get("profile_image_url"),
        )

    raise ValueError(f"Platform {platform} not supported")
