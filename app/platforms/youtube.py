import urllib.parse
import httpx
from app.utils.logger import logger

# Google / YouTube endpoints
AUTH_URL_BASE = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
CHANNELS_URL = "https://www.googleapis.com/youtube/v3/channels"
ANALYTICS_REPORTS_URL = "https://youtubeanalytics.googleapis.com/v2/reports"

async def get_auth_url(client_id: str, redirect_uri: str, state: str, scopes: list):
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": " ".join(scopes),
        "state": state,
        "access_type": "offline",
        "prompt": "consent"
    }
    return f"{AUTH_URL_BASE}?{urllib.parse.urlencode(params)}"

async def exchange_code(client_id: str, client_secret: str, redirect_uri: str, code: str):
    async with httpx.AsyncClient() as client:
        res = await client.post(
            TOKEN_URL,
            data={
                "client_id": client_id,
                "client_secret": client_secret,
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": redirect_uri
            }
        )
        res.raise_for_status()
        return res.json()

async def refresh_access_token(client_id: str, client_secret: str, refresh_token: str):
    async with httpx.AsyncClient() as client:
        res = await client.post(
            TOKEN_URL,
            data={
                "client_id": client_id,
                "client_secret": client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token"
            }
        )
        res.raise_for_status()
        return res.json()

async def get_userinfo(access_token: str):
    """Google account identity of whoever signed in (not the YouTube channel)."""
    async with httpx.AsyncClient() as client:
        res = await client.get(
            USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"}
        )
        res.raise_for_status()
        return res.json()

async def get_my_channel(access_token: str):
    """
    Returns the first channel owned by the token holder, or None when the
    Google account has no YouTube channel.
    """
    async with httpx.AsyncClient() as client:
        res = await client.get(
            CHANNELS_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            params={"part": "snippet", "mine": "true"}
        )
        res.raise_for_status()
        items = res.json().get("items") or []
        if not items:
            return None
        return items[0]

async def query_reports(access_token: str, channel_id: str, start_date: str, end_date: str, metrics: list, dimensions: str = "day", sort: str = "day"):
    """
    Raw YouTube Analytics reports.query call. Raises httpx errors untouched;
    callers map them (see metrics_fetcher).
    """
    logger.info(f"YouTube Analytics query for channel {channel_id}: {start_date}..{end_date}")
    async with httpx.AsyncClient(timeout=60.0) as client:
        res = await client.get(
            ANALYTICS_REPORTS_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            params={
                "ids": f"channel=={channel_id}",
                "startDate": start_date,
                "endDate": end_date,
                "metrics": ",".join(metrics),
                "dimensions": dimensions,
                "sort": sort
            }
        )
        res.raise_for_status()
        return res.json()

async def get_channel_statistics(access_token: str, channel_id: str):
    """
    channels?part=statistics for one channel. Returns the statistics dict
    (counts come back as strings), or None when the channel is not found.
    """
    async with httpx.AsyncClient() as client:
        res = await client.get(
            CHANNELS_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            params={"part": "statistics", "id": channel_id}
        )
        res.raise_for_status()
        items = res.json().get("items") or []
        if not items:
            return None
        return items[0].get("statistics") or {}
