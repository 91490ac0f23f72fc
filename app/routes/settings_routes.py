from fastapi import APIRouter, Depends, HTTPException, Body
from pydantic import BaseModel
from typing import Any, Dict, Optional
from datetime import datetime
from app.core.database import ensure_db
from app.models.user import User
from app.services.account_service import list_accounts
from app.utils.auth import get_current_user

router = APIRouter(prefix="/settings", tags=["Settings"], dependencies=[Depends(ensure_db)])

ALLOWED_DATE_RANGES = (7, 28, 90)

class ProfileUpdate(BaseModel):
    displayName: Optional[str] = None
    photoURL: Optional[str] = None

@router.get("/profile")
async def get_profile(user: User = Depends(get_current_user)):
    return {"profile": user.public_profile()}

@router.put("/profile")
async def update_profile(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user)
):
    """Update display name and/or photo URL."""
    if payload.displayName is not None:
        name = payload.displayName.strip()
        if not name:
            raise HTTPException(status_code=400, detail="Display name cannot be empty")
        user.display_name = name
    if payload.photoURL is not None:
        user.photo_url = payload.photoURL.strip() or None

    user.updated_at = datetime.utcnow()
    await user.save()
    return {"success": True, "profile": user.public_profile()}

@router.patch("/preferences")
async def update_preferences(
    payload: Dict[str, Any] = Body(...),
    user: User = Depends(get_current_user)
):
    """Merge the given keys into the preference bag; other keys are kept."""
    if "defaultDateRange" in payload and payload["defaultDateRange"] not in ALLOWED_DATE_RANGES:
        raise HTTPException(
            status_code=400,
            detail=f"defaultDateRange must be one of {', '.join(str(d) for d in ALLOWED_DATE_RANGES)}"
        )
    if "theme" in payload and payload["theme"] not in ("light", "dark", "system"):
        raise HTTPException(status_code=400, detail="theme must be light, dark or system")

    merged = dict(user.preferences)
    merged.update(payload)
    user.preferences = merged
    user.updated_at = datetime.utcnow()
    await user.save()
    return {"success": True, "preferences": user.preferences}

@router.get("/dashboard-layout")
async def get_dashboard_layout(user: User = Depends(get_current_user)):
    return {"layout": user.dashboard_layout}

@router.put("/dashboard-layout")
async def save_dashboard_layout(
    layout: Dict[str, Any] = Body(...),
    user: User = Depends(get_current_user)
):
    user.dashboard_layout = layout
    user.updated_at = datetime.utcnow()
    await user.save()
    return {"success": True, "layout": user.dashboard_layout}

@router.get("/subscription")
async def get_subscription(user: User = Depends(get_current_user)):
    accounts = await list_accounts(user)
    usage = {}
    for account in accounts:
        usage[account.platform] = usage.get(account.platform, 0) + 1

    return {
        "tier": user.subscription_tier,
        "status": user.subscription_status,
        "premiumExpiry": user.premium_expiry,
        "limits": user.account_limits.model_dump(by_alias=True),
        "usage": {"total": len(accounts), "byPlatform": usage},
    }
