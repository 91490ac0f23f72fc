from fastapi import APIRouter, Depends, Query, HTTPException
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from typing import Optional
from urllib.parse import urlencode
import uuid
import datetime
from app.core.config import settings
from app.core.database import ensure_db
from app.utils.auth import (
    create_access_token,
    generate_api_key,
    get_current_user,
    hash_key,
    hash_password,
    verify_password,
)
from app.models.user import User, limits_for_tier
from app.models.oauth_state import OAuthState
from app.platforms import youtube
from app.utils.logger import logger

router = APIRouter(prefix="/auth", tags=["Auth"], dependencies=[Depends(ensure_db)])

class RegisterRequest(BaseModel):
    email: str
    password: str
    displayName: Optional[str] = None

class LoginRequest(BaseModel):
    email: str
    password: str

def _normalize_email(email: str) -> str:
    return email.strip().lower()

@router.post("/register")
async def register(req: RegisterRequest):
    email = _normalize_email(req.email)
    if "@" not in email:
        raise HTTPException(status_code=400, detail="A valid email is required")
    # bcrypt only looks at the first 72 bytes
    if len(req.password) < 8 or len(req.password.encode()) > 72:
        raise HTTPException(status_code=400, detail="Password must be 8 to 72 characters")

    if await User.find_one(User.email == email):
        raise HTTPException(status_code=400, detail="An account with this email already exists")

    api_key = generate_api_key()
    user = User(
        email=email,
        displayName=req.displayName,
        passwordHash=hash_password(req.password),
        apiKeyHash=hash_key(api_key),
        providers=["password"],
        subscriptionTier="free",
        accountLimits=limits_for_tier("free"),
        lastLoginAt=datetime.datetime.utcnow(),
    )
    await user.insert()
    logger.info(f"Registered user {user.id}")

    return {
        "token": create_access_token(str(user.id)),
        "apiKey": api_key,
        "message": "Copy this key now. It will not be shown again.",
        "user": user.public_profile(),
    }

@router.post("/login")
async def login(req: LoginRequest):
    user = await User.find_one(User.email == _normalize_email(req.email))
    if not user or not verify_password(req.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    user.last_login_at = datetime.datetime.utcnow()
    await user.save()
    return {"token": create_access_token(str(user.id)), "user": user.public_profile()}

@router.get("/me")
async def get_me(user: User = Depends(get_current_user)):
    return {"user": user.public_profile()}

@router.post("/api-key/regenerate")
async def regenerate_api_key(user: User = Depends(get_current_user)):
    new_key = generate_api_key()
    user.api_key_hash = hash_key(new_key)
    user.updated_at = datetime.datetime.utcnow()
    await user.save()

    return {
        "apiKey": new_key,
        "message": "Copy this key now. It will not be shown again."
    }

@router.get("/google")
async def google_sign_in():
    """
    Start Google sign-in. Returns the consent URL; the state is kept in
    oauth_states until the callback consumes it.
    """
    state_id = str(uuid.uuid4())
    await OAuthState(state_id=state_id, platform="google", purpose="sign_in").insert()

    url = await youtube.get_auth_url(
        settings.GOOGLE_CLIENT_ID,
        settings.GOOGLE_SIGNIN_REDIRECT_URI,
        state_id,
        settings.GOOGLE_SIGNIN_SCOPES,
    )
    return {"authUrl": url}

async def upsert_google_user(profile: dict) -> User:
    """
    Create or update the user for a Google identity. New users start on the
    free tier; existing users keep their tier and limits.
    """
    email = _normalize_email(profile.get("email", ""))
    if not email:
        raise ValueError("Google profile has no email")

    now = datetime.datetime.utcnow()
    user = await User.find_one(User.email == email)
    if not user:
        user = User(
            email=email,
            displayName=profile.get("name"),
            photoURL=profile.get("picture"),
            providers=["google"],
            subscriptionTier="free",
            accountLimits=limits_for_tier("free"),
            lastLoginAt=now,
        )
        await user.insert()
        logger.info(f"Created user {user.id} from Google sign-in")
        return user

    user.display_name = user.display_name or profile.get("name")
    user.photo_url = user.photo_url or profile.get("picture")
    if "google" not in user.providers:
        user.providers.append("google")
    user.last_login_at = now
    user.updated_at = now
    await user.save()
    return user

@router.get("/google/callback")
async def google_callback(
    code: str = Query(...),
    state: str = Query(...),
):
    frontend_url = settings.FRONTEND_URL

    oauth_data = await OAuthState.find_one(OAuthState.state_id == state, OAuthState.purpose == "sign_in")
    if not oauth_data:
        raise HTTPException(status_code=400, detail="Invalid or expired state")
    await oauth_data.delete()

    try:
        token_data = await youtube.exchange_code(
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
            redirect_uri=settings.GOOGLE_SIGNIN_REDIRECT_URI,
            code=code,
        )
        profile = await youtube.get_userinfo(token_data["access_token"])
        user = await upsert_google_user(profile)
    except Exception as e:
        logger.error(f"Google sign-in failed: {e}", exc_info=True)
        return RedirectResponse(url=f"{frontend_url}/auth/callback?{urlencode({'error': 'sign_in_failed'})}")

    token = create_access_token(str(user.id))
    return RedirectResponse(url=f"{frontend_url}/auth/callback?{urlencode({'token': token})}")
