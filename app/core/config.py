import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    # DATABASE
    MONGODB_URI = os.getenv("MONGODB_URI")
    MONGODB_DB = os.getenv("MONGODB_DB", "omnilytics")
    # Multi-document transactions need a replica set (Atlas, or a local rs)
    MONGODB_TRANSACTIONS = _flag("MONGODB_TRANSACTIONS", "true")

    # WEB
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")
    FRONTEND_URL = os.getenv("FRONTEND_URL") or os.getenv("CORS_ORIGINS", "").split(",")[0] or "http://localhost:3000"

    # AUTH
    JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "1440"))
    TOKEN_ENCRYPTION_KEY = os.getenv("TOKEN_ENCRYPTION_KEY")
    CRON_SECRET = os.getenv("CRON_SECRET", "")

    # GOOGLE / YOUTUBE
    GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
    GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
    GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI")
    GOOGLE_SCOPES = os.getenv(
        "GOOGLE_SCOPES",
        "openid,email,profile,"
        "https://www.googleapis.com/auth/youtube.readonly,"
        "https://www.googleapis.com/auth/yt-analytics.readonly",
    ).split(",")
    # Google sign-in for the app itself (not channel access)
    GOOGLE_SIGNIN_REDIRECT_URI = os.getenv("GOOGLE_SIGNIN_REDIRECT_URI") or GOOGLE_REDIRECT_URI
    GOOGLE_SIGNIN_SCOPES = ["openid", "email", "profile"]

    # INSTAGRAM (Facebook login)
    FACEBOOK_APP_ID = os.getenv("FACEBOOK_APP_ID")
    FACEBOOK_APP_SECRET = os.getenv("FACEBOOK_APP_SECRET")
    INSTAGRAM_REDIRECT_URI = os.getenv("INSTAGRAM_REDIRECT_URI")
    INSTAGRAM_SCOPES = os.getenv(
        "INSTAGRAM_SCOPES", "instagram_basic,instagram_manage_insights,pages_show_list"
    ).split(",")

    # LINKEDIN
    LINKEDIN_CLIENT_ID = os.getenv("LINKEDIN_CLIENT_ID")
    LINKEDIN_CLIENT_SECRET = os.getenv("LINKEDIN_CLIENT_SECRET")
    LINKEDIN_REDIRECT_URI = os.getenv("LINKEDIN_REDIRECT_URI")
    LINKEDIN_SCOPES = os.getenv("LINKEDIN_SCOPES", "openid,profile,email").split(",")

    # TWITTER / X
    TWITTER_CLIENT_ID = os.getenv("TWITTER_CLIENT_ID")
    TWITTER_CLIENT_SECRET = os.getenv("TWITTER_CLIENT_SECRET")
    TWITTER_REDIRECT_URI = os.getenv("TWITTER_REDIRECT_URI")
    TWITTER_SCOPES = os.getenv(
        "TWITTER_SCOPES", "tweet.read,users.read,offline.access"
    ).split(",")

    # INGESTION
    YOUTUBE_LOOKBACK_DAYS = int(os.getenv("YOUTUBE_LOOKBACK_DAYS", "90"))
    # Firestore capped batches at 500 writes; keep the same chunk size
    TIMESERIES_BATCH_SIZE = int(os.getenv("TIMESERIES_BATCH_SIZE", "500"))

    # AI
    INSIGHTS_DELAY_SECONDS = float(os.getenv("INSIGHTS_DELAY_SECONDS", "0.5"))


settings = Settings()
