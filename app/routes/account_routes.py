from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from typing import Optional
from urllib.parse import urlencode
import uuid
from beanie import PydanticObjectId
from app.core.config import settings
from app.core.database import ensure_db
from app.models.oauth_state import OAuthState
from app.models.social_account import PLATFORMS
from app.models.user import User
from app.platforms import instagram, twitter, linkedin, youtube
from app.services.account_service import connect_account, disconnect_account, list_accounts
from app.services.channel_resolver import resolve_identity
from app.services.ingestion_service import fetch_initial_youtube_stats
from app.utils.auth import get_current_user
from app.utils.errors import AccountLimitError, IngestionError, PremiumRequiredError
from app.utils.logger import logger

router = APIRouter(prefix="/linked-accounts", tags=["Accounts"], dependencies=[Depends(ensure_db)])
connect_router = APIRouter(prefix="/connect", tags=["Accounts"], dependencies=[Depends(ensure_db)])

@router.get("")
async def get_linked_accounts(user: User = Depends(get_current_user)):
    accounts = await list_accounts(user)
    return {
        "accounts": [a.public_view() for a in accounts],
        "limits": user.account_limits.model_dump(by_alias=True),
    }

@router.delete("/{account_id}")
async def remove_linked_account(
    account_id: str,
    user: User = Depends(get_current_user)
):
    remaining = await disconnect_account(user, account_id)
    if remaining is None:
        raise HTTPException(status_code=404, detail="Account not found")
    return {"message": "Disconnected successfully", "remaining": remaining}

@connect_router.get("/{platform}")
async def connect_platform(
    platform: str,
    user: User = Depends(get_current_user)
):
    """
    Return the platform's OAuth consent URL for the current user.
    """
    if platform not in PLATFORMS:
        raise HTTPException(status_code=400, detail=f"Platform {platform} not supported yet")
    if user.account_limits.for_platform(platform) <= 0:
        raise HTTPException(status_code=402, detail=f"{platform.capitalize()} requires a premium subscription")

    state_id = str(uuid.uuid4())
    state = OAuthState(state_id=state_id, platform=platform, user_id=str(user.id), purpose="connect")

    if platform == "instagram":
        url = await instagram.get_auth_url(
            settings.FACEBOOK_APP_ID, settings.INSTAGRAM_REDIRECT_URI, state_id, settings.INSTAGRAM_SCOPES
        )
    elif platform == "twitter":
        code_verifier, code_challenge = twitter.generate_pkce_pair()
        state.code_verifier = code_verifier
        url = await twitter.get_auth_url(
            settings.TWITTER_CLIENT_ID, settings.TWITTER_REDIRECT_URI, state_id, settings.TWITTER_SCOPES, code_challenge
        )
    elif platform == "linkedin":
        url = await linkedin.get_auth_url(
            settings.LINKEDIN_CLIENT_ID, settings.LINKEDIN_REDIRECT_URI, state_id, settings.LINKEDIN_SCOPES
        )
    else:
        url = await youtube.get_auth_url(
            settings.GOOGLE_CLIENT_ID, settings.GOOGLE_REDIRECT_URI, state_id, settings.GOOGLE_SCOPES
        )

    await state.insert()
    return {"authUrl": url}

async def exchange_platform_code(platform: str, code: str, oauth_data: OAuthState) -> dict:
    if platform == "instagram":
        return await instagram.exchange_code(
            client_id=settings.FACEBOOK_APP_ID,
            client_secret=settings.FACEBOOK_APP_SECRET,
            redirect_uri=settings.INSTAGRAM_REDIRECT_URI,
            code=code,
        )
    if platform == "twitter":
        return await twitter.exchange_code(
            client_id=settings.TWITTER_CLIENT_ID,
            client_secret=settings.TWITTER_CLIENT_SECRET,
            redirect_uri=settings.TWITTER_REDIRECT_URI,
            code=code,
            code_verifier=oauth_data.code_verifier,
        )
    if platform == "linkedin":
        return await linkedin.exchange_code(
            client_id=settings.LINKEDIN_CLIENT_ID,
            client_secret=settings.LINKEDIN_CLIENT_SECRET,
            redirect_uri=settings.LINKEDIN_REDIRECT_URI,
            code=code,
        )
    return await youtube.exchange_code(
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        redirect_uri=settings.GOOGLE_REDIRECT_URI,
        code=code,
    )

def _frontend_redirect(params: dict) -> RedirectResponse:
    return RedirectResponse(url=f"{settings.FRONTEND_URL}/accounts/callback?{urlencode(params)}")

@connect_router.get("/{platform}/callback")
async def oauth_callback(
    platform: str,
    state: str = Query(...),
    code: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
):
    """
    Exchange the code, resolve the content identity, store the account and,
    for a YouTube channel, run the initial 90-day ingestion.
    """
    oauth_data = await OAuthState.find_one(
        OAuthState.state_id == state,
        OAuthState.platform == platform,
        OAuthState.purpose == "connect",
    )
    if not oauth_data:
        raise HTTPException(status_code=400, detail="Invalid or expired state")
    await oauth_data.delete()

    if error or not code:
        return _frontend_redirect({"platform": platform, "error": error or "access_denied"})

    user = await User.get(PydanticObjectId(oauth_data.user_id))
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    try:
        token_data = await exchange_platform_code(platform, code, oauth_data)
        identity = await resolve_identity(platform, token_data["access_token"])
        account = await connect_account(user, identity, token_data)
    except PremiumRequiredError as e:
        return _frontend_redirect({"platform": platform, "error": "premium_required", "message": str(e)})
    except AccountLimitError as e:
        return _frontend_redirect({"platform": platform, "error": "account_limit", "message": str(e)})
    except Exception as e:
        logger.error(f"OAuth callback for {platform} failed: {e}", exc_info=True)
        return _frontend_redirect({"platform": platform, "error": "connection_failed"})

    params = {"platform": platform, "accountId": str(account.id), "status": account.status}

    if platform == "youtube" and not identity.is_fallback:
        try:
            result = await fetch_initial_youtube_stats(
                user_id=str(user.id),
                social_account_id=str(account.id),
                access_token=token_data["access_token"],
                youtube_channel_id=identity.platform_user_id,
            )
            params["documentsWritten"] = result["documentsWritten"]
        except IngestionError as e:
            logger.error(f"Initial ingestion for account {account.id} failed: {e.message} ({e.detail})")
            params["ingestionError"] = e.message

    return _frontend_redirect(params)
