import datetime
from typing import Optional
from cryptography.fernet import Fernet
from app.core.config import settings
from app.models.social_account import SocialAccount
from app.platforms import youtube
from app.utils.logger import logger

_fallback_key: Optional[bytes] = None

def get_fernet():
    global _fallback_key
    if not settings.TOKEN_ENCRYPTION_KEY:
        # Development only: tokens encrypted with this key die with the process
        if _fallback_key is None:
            logger.warning("TOKEN_ENCRYPTION_KEY missing. Using a temporary key.")
            _fallback_key = Fernet.generate_key()
        return Fernet(_fallback_key)
    return Fernet(settings.TOKEN_ENCRYPTION_KEY.encode())

def encrypt_token(token: str) -> str:
    """Encrypt a plain text token."""
    f = get_fernet()
    return f.encrypt(token.encode()).decode()

def decrypt_token(encrypted_token: str) -> str:
    """Decrypt an encrypted token."""
    f = get_fernet()
    return f.decrypt(encrypted_token.encode()).decode()

def apply_token_response(account: SocialAccount, token_data: dict):
    """Store a provider token response on the account (encrypted)."""
    account.access_token_enc = encrypt_token(token_data["access_token"])
    if token_data.get("refresh_token"):
        account.refresh_token_enc = encrypt_token(token_data["refresh_token"])
    if token_data.get("expires_in"):
        account.token_expiry = datetime.datetime.utcnow() + datetime.timedelta(seconds=int(token_data["expires_in"]))
    if token_data.get("scope"):
        account.scope = token_data["scope"]

async def ensure_valid_access_token(account: SocialAccount) -> str:
    """
    Return a usable plain access token for the account, refreshing it through
    the provider when it has expired. Only Google tokens are refreshable here.
    Raises ValueError when the account has no usable token.
    """
    if not account.access_token_enc:
        raise ValueError(f"Account {account.id} has no stored access token")

    expired = account.token_expiry is not None and account.token_expiry <= datetime.datetime.utcnow()
    if not expired:
        return decrypt_token(account.access_token_enc)

    if account.platform != "youtube" or not account.refresh_token_enc:
        raise ValueError(f"Access token for account {account.id} expired and cannot be refreshed")

    logger.info(f"Refreshing expired Google token for account {account.id}")
    token_data = await youtube.refresh_access_token(
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        refresh_token=decrypt_token(account.refresh_token_enc),
    )
    apply_token_response(account, token_data)
    await account.save()
    return token_data["access_token"]
