"""
Cron Routes - Endpoints triggered by Vercel Cron Jobs
"""
from fastapi import APIRouter, Request, HTTPException
from app.core.config import settings
from app.core.database import ensure_beanie_initialized
from app.models.social_account import SocialAccount
from app.services.ingestion_service import fetch_initial_youtube_stats
from app.services.token_service import ensure_valid_access_token
from app.utils.errors import IngestionError
from app.utils.logger import logger

router = APIRouter(prefix="/cron", tags=["Cron"])

def verify_cron_secret(request: Request):
    """Verify the request is from Vercel Cron or has valid secret."""
    # Vercel Cron Jobs include this header
    if request.headers.get("x-vercel-cron"):
        return True

    # Fallback: check for manual secret
    auth_header = request.headers.get("authorization")
    if settings.CRON_SECRET and auth_header == f"Bearer {settings.CRON_SECRET}":
        return True

    return False

async def sync_youtube_account(account: SocialAccount) -> dict:
    """Re-ingest one account. Failures are reported, never raised."""
    report = {"accountId": str(account.id), "channelId": account.platform_user_id}

    try:
        access_token = await ensure_valid_access_token(account)
    except Exception as e:
        logger.warning(f"Token refresh failed for account {account.id}, marking needs_reauth: {e}")
        account.status = "needs_reauth"
        await account.save()
        report.update({"status": "needs_reauth", "error": str(e)})
        return report

    try:
        result = await fetch_initial_youtube_stats(
            user_id=str(account.user_id),
            social_account_id=str(account.id),
            access_token=access_token,
            youtube_channel_id=account.platform_user_id,
        )
    except IngestionError as e:
        logger.error(f"Re-sync of account {account.id} failed: {e.message} ({e.detail})")
        report.update({"status": "error", "error": e.message})
        return report

    report.update({"status": "ok", "documentsWritten": result["documentsWritten"]})
    return report

@router.post("/sync-youtube")
@router.get("/sync-youtube")  # GET also works for Vercel Cron
async def sync_youtube(request: Request):
    """
    Refresh the YouTube time series of every connected channel.
    """
    if not verify_cron_secret(request):
        raise HTTPException(status_code=401, detail="Unauthorized")

    await ensure_beanie_initialized()

    accounts = await SocialAccount.find(
        SocialAccount.platform == "youtube",
        SocialAccount.status == "connected",
        SocialAccount.identity_source == "channel",
    ).to_list()
    logger.info(f"YouTube re-sync started for {len(accounts)} account(s)")

    results = []
    for account in accounts:
        try:
            results.append(await sync_youtube_account(account))
        except Exception as e:
            logger.error(f"Re-sync of account {account.id} crashed: {e}", exc_info=True)
            results.append({"accountId": str(account.id), "status": "error", "error": str(e)})

    synced = sum(1 for r in results if r["status"] == "ok")
    return {"status": "ok", "synced": synced, "total": len(results), "results": results}
