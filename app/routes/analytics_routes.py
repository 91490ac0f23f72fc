from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from typing import Optional
from datetime import date
from beanie import PydanticObjectId
from bson.errors import InvalidId
from app.core.database import ensure_db
from app.models.social_account import PLATFORMS, SocialAccount
from app.models.user import User
from app.services.analytics_dashboard_service import get_dashboard_summary
from app.services.analytics_service import get_platform_dashboard
from app.services.ingestion_service import fetch_initial_youtube_stats
from app.utils.auth import get_current_user
from app.utils.errors import IngestionError

router = APIRouter(prefix="/analytics", tags=["Analytics"], dependencies=[Depends(ensure_db)])

class InitialStatsRequest(BaseModel):
    userId: Optional[str] = None
    socialAccountId: Optional[str] = None
    accessToken: Optional[str] = None
    youtubeChannelId: Optional[str] = None

@router.get("/overview")
async def get_overview(
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    user: User = Depends(get_current_user)
):
    return await get_dashboard_summary(user, start, end)

@router.post("/youtube/initial-stats")
async def initial_youtube_stats(req: InitialStatsRequest, user: User = Depends(get_current_user)):
    """
    Backfill the last 90 days of YouTube channel analytics for an account.
    """
    if req.userId and req.userId != str(user.id):
        raise HTTPException(status_code=403, detail="Cannot ingest stats for another user")

    if req.socialAccountId:
        try:
            account_oid = PydanticObjectId(req.socialAccountId)
        except InvalidId:
            raise HTTPException(status_code=400, detail="Invalid socialAccountId")
        account = await SocialAccount.find_one(
            SocialAccount.id == account_oid,
            SocialAccount.user_id == user.id,
        )
        if not account:
            raise HTTPException(status_code=404, detail="Account not found")
        if account.platform != "youtube":
            raise HTTPException(status_code=400, detail="socialAccountId is not a YouTube account")
        if req.youtubeChannelId and req.youtubeChannelId != account.platform_user_id:
            raise HTTPException(status_code=400, detail="youtubeChannelId does not match the connected channel")

    try:
        return await fetch_initial_youtube_stats(
            user_id=req.userId,
            social_account_id=req.socialAccountId,
            access_token=req.accessToken,
            youtube_channel_id=req.youtubeChannelId,
        )
    except IngestionError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())

@router.get("/{platform}")
async def get_platform_analytics(
    platform: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    metric: str = Query("views"),
    limit: int = Query(10, ge=1, le=50),
    accountId: Optional[str] = Query(None),
    user: User = Depends(get_current_user)
):
    if platform not in PLATFORMS:
        raise HTTPException(status_code=404, detail=f"Unknown platform {platform}")
    return await get_platform_dashboard(user, platform, start, end, metric=metric, limit=limit, account_id=accountId)
