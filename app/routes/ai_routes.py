from fastapi import APIRouter, Depends
from app.services.ai_service import get_ai_insights
from app.utils.auth import get_current_user
from app.models.user import User

router = APIRouter(prefix="/ai", tags=["AI"])

@router.get("/insights")
async def ai_insights(user: User = Depends(get_current_user)):
    return await get_ai_insights()
