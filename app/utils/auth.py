import hashlib
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import AsyncIterator, Optional

import bcrypt
from beanie import PydanticObjectId
from bson.errors import InvalidId
from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.security.api_key import APIKeyHeader
from jose import JWTError, jwt

from app.core.config import settings
from app.core.database import ensure_beanie_initialized
from app.models.user import User
from app.utils.logger import logger

API_KEY_NAME = "x-api-key"
api_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)
bearer_scheme = HTTPBearer(auto_error=False)

def hash_key(key: str) -> str:
    """Hash an API key for storage."""
    return hashlib.sha256(key.encode()).hexdigest()

def generate_api_key() -> str:
    return f"osk_{uuid.uuid4().hex}"

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()

def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False

def create_access_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    expire = datetime.utcnow() + timedelta(minutes=expires_minutes or settings.JWT_EXPIRE_MINUTES)
    payload = {"sub": user_id, "exp": expire}
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

def decode_access_token(token: str) -> Optional[str]:
    """User id carried by a valid token, or None."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")


@dataclass
class AuthSession:
    """
    Authentication state of one request. Opened from the request credentials
    before the handler runs and closed after it returns.
    """
    user: Optional[User] = None
    is_loading: bool = True

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def open(self, user: Optional[User]):
        self.user = user
        self.is_loading = False

    def close(self):
        self.user = None
        self.is_loading = True


async def _resolve_user(bearer: Optional[HTTPAuthorizationCredentials], api_key: Optional[str]) -> Optional[User]:
    await ensure_beanie_initialized()

    if bearer and bearer.credentials:
        user_id = decode_access_token(bearer.credentials)
        if user_id:
            try:
                oid = PydanticObjectId(user_id)
            except InvalidId:
                logger.warning(f"Token subject {user_id} is not a user id")
                return None
            return await User.get(oid)

    if api_key:
        return await User.find_one(User.api_key_hash == hash_key(api_key))

    return None


async def get_auth_session(
    bearer: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    api_key: Optional[str] = Security(api_header),
) -> AsyncIterator[AuthSession]:
    session = AuthSession()
    session.open(await _resolve_user(bearer, api_key))
    try:
        yield session
    finally:
        session.close()


async def get_current_user(session: AuthSession = Depends(get_auth_session)) -> User:
    """
    FastAPI dependency: Bearer JWT or x-api-key, returning the User.
    """
    if not session.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return session.user


