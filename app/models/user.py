from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from beanie import Document
from pydantic import BaseModel, ConfigDict, Field

SubscriptionTier = Literal["free", "premium"]


class AccountLimits(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_instagram: int = Field(1, alias="maxInstagram")
    max_youtube: int = Field(1, alias="maxYoutube")
    max_linkedin: int = Field(0, alias="maxLinkedin")
    max_x: int = Field(0, alias="maxX")
    max_total: int = Field(2, alias="maxTotal")

    def for_platform(self, platform: str) -> int:
        return {
            "instagram": self.max_instagram,
            "youtube": self.max_youtube,
            "linkedin": self.max_linkedin,
            "twitter": self.max_x,
        }.get(platform, 0)


FREE_LIMITS = AccountLimits(maxInstagram=1, maxYoutube=1, maxLinkedin=0, maxX=0, maxTotal=2)
PREMIUM_LIMITS = AccountLimits(maxInstagram=5, maxYoutube=5, maxLinkedin=5, maxX=5, maxTotal=20)


def limits_for_tier(tier: str) -> AccountLimits:
    source = PREMIUM_LIMITS if tier == "premium" else FREE_LIMITS
    return source.model_copy()


class User(Document):
    email: str
    display_name: Optional[str] = Field(None, alias="displayName")
    photo_url: Optional[str] = Field(None, alias="photoURL")
    password_hash: Optional[str] = Field(None, alias="passwordHash")
    api_key_hash: Optional[str] = Field(None, alias="apiKeyHash")
    providers: List[str] = Field(default_factory=list)

    subscription_tier: SubscriptionTier = Field("free", alias="subscriptionTier")
    subscription_status: Optional[str] = Field(None, alias="subscriptionStatus")
    premium_expiry: Optional[datetime] = Field(None, alias="premiumExpiry")
    account_limits: AccountLimits = Field(default_factory=lambda: limits_for_tier("free"), alias="accountLimits")

    dashboard_layout: Optional[Dict[str, Any]] = Field(None, alias="dashboardLayout")
    preferences: Dict[str, Any] = Field(default_factory=dict)

    created_at: datetime = Field(default_factory=datetime.utcnow, alias="createdAt")
    updated_at: datetime = Field(default_factory=datetime.utcnow, alias="updatedAt")
    last_login_at: Optional[datetime] = Field(None, alias="lastLoginAt")

    @property
    def is_premium(self) -> bool:
        return self.subscription_tier == "premium"

    def public_profile(self) -> dict:
        return {
            "id": str(self.id),
            "email": self.email,
            "displayName": self.display_name,
            "photoURL": self.photo_url,
            "providers": self.providers,
            "subscriptionTier": self.subscription_tier,
            "accountLimits": self.account_limits.model_dump(by_alias=True),
            "preferences": self.preferences,
            "createdAt": self.created_at,
        }

    class Settings:
        name = "users"
        indexes = [
            "email",
            "apiKeyHash",
        ]
