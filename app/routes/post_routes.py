from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from typing import List, Optional
from datetime import date
from beanie import PydanticObjectId
from bson.errors import InvalidId
from app.core.database import ensure_db
from app.models.social_account import SocialAccount
from app.models.user import User
from app.services.analytics_service import load_account_data, rank_posts, resolve_range
from app.services.post_service import PostSnapshot, upsert_posts
from app.utils.auth import get_current_user

router = APIRouter(prefix="/posts", tags=["Posts"], dependencies=[Depends(ensure_db)])

class PostBatch(BaseModel):
    posts: List[PostSnapshot]

async def _owned_account(user: User, account_id: str) -> SocialAccount:
    try:
        oid = PydanticObjectId(account_id)
    except InvalidId:
        raise HTTPException(status_code=404, detail="Account not found")
    account = await SocialAccount.find_one(SocialAccount.id == oid, SocialAccount.user_id == user.id)
    if not account:
        raise HTTPException(status_code=404, detail="Account not found")
    return account

@router.get("/{account_id}")
async def get_posts(
    account_id: str,
    start: Optional[date] = Query(None),
    end: Optional[date] = Query(None),
    metric: str = Query("publishedAt"),
    limit: int = Query(50, ge=1, le=200),
    user: User = Depends(get_current_user)
):
    """Posts published in the range, newest first unless ranked by a metric."""
    account = await _owned_account(user, account_id)
    start, end = resolve_range(start, end)
    _, posts = await load_account_data(str(user.id), str(account.id), start, end)

    if metric != "publishedAt":
        posts = rank_posts(posts, metric=metric, limit=limit)
    else:
        posts = posts[:limit]
    return {"posts": posts, "range": {"start": start.isoformat(), "end": end.isoformat()}}

@router.put("/{account_id}")
async def put_posts(
    account_id: str,
    batch: PostBatch,
    user: User = Depends(get_current_user)
):
    account = await _owned_account(user, account_id)
    count = await upsert_posts(account, batch.posts)
    return {"success": True, "upserted": count}
