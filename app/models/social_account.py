from datetime import datetime
from typing import Literal, Optional
from beanie import Document, PydanticObjectId
from pydantic import Field

SocialPlatform = Literal["instagram", "youtube", "linkedin", "twitter"]
ConnectionStatus = Literal["connected", "disconnected", "needs_reauth", "error"]

PLATFORMS = ("instagram", "youtube", "linkedin", "twitter")
PREMIUM_PLATFORMS = ("linkedin", "twitter")


class SocialAccount(Document):
    user_id: PydanticObjectId = Field(alias="userId")
    platform: SocialPlatform
    platform_user_id: str = Field(alias="platformUserId")
    username: str
    profile_picture_url: Optional[str] = Field(None, alias="profilePictureUrl")
    status: ConnectionStatus = "connected"
    # "channel" when the content identity was resolved, "sign_in" on fallback
    identity_source: str = Field("channel", alias="identitySource")

    # Fernet-encrypted, see token_service
    access_token_enc: Optional[str] = Field(None, alias="accessTokenEnc")
    refresh_token_enc: Optional[str] = Field(None, alias="refreshTokenEnc")
    token_expiry: Optional[datetime] = Field(None, alias="tokenExpiry")
    scope: Optional[str] = None

    connected_at: datetime = Field(default_factory=datetime.utcnow, alias="connectedAt")
    last_synced_at: Optional[datetime] = Field(None, alias="lastSyncedAt")

    def public_view(self) -> dict:
        return {
            "id": str(self.id),
            "platform": self.platform,
            "platformUserId": self.platform_user_id,
            "username": self.username,
            "profilePictureUrl": self.profile_picture_url,
            "status": self.status,
            "identitySource": self.identity_source,
            "connectedAt": self.connected_at,
            "lastSyncedAt": self.last_synced_at,
        }

    class Settings:
        name = "social_accounts"
        indexes = [
            "userId",
            [("userId", 1), ("platform", 1)],
            [("platform", 1), ("platformUserId", 1)],
        ]
