from datetime import datetime
from typing import Optional
from beanie import Document
from pydantic import Field
import pymongo

# Consent flows not completed within this window are dropped by MongoDB
STATE_TTL_SECONDS = 600

class OAuthState(Document):
    state_id: str = Field(unique=True)
    platform: str
    user_id: Optional[str] = None
    # "connect" links a social account, "sign_in" logs the user in with Google
    purpose: str = "connect"
    code_verifier: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "oauth_states"
        indexes = [
            "state_id",
            pymongo.IndexModel([("created_at", 1)], expireAfterSeconds=STATE_TTL_SECONDS),
        ]
