import urllib.parse
import httpx
from app.utils.logger import logger

GRAPH_URL = "https://graph.facebook.com/v24.0"

async def get_auth_url(client_id: str, redirect_uri: str, state: str, scopes: list):
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "state": state,
        "response_type": "code",
        "scope": ",".join(scopes)
    }
    return f"https://www.facebook.com/v24.0/dialog/oauth?{urllib.parse.urlencode(params)}"

async def exchange_code(client_id: str, client_secret: str, redirect_uri: str, code: str):
    async with httpx.AsyncClient() as client:
        res = await client.get(
            f"{GRAPH_URL}/oauth/access_token",
            params={
                "client_id": client_id,
                "client_secret": client_secret,
                "redirect_uri": redirect_uri,
                "code": code
            }
        )
        res.raise_for_status()
        return res.json()

async def get_business_account(access_token: str):
    """
    Facebook login yields a Facebook user; the Instagram professional account
    hangs off one of their Pages. Returns the first one found, or None.
    """
    async with httpx.AsyncClient() as client:
        res = await client.get(
            f"{GRAPH_URL}/me/accounts",
            params={
                "fields": "instagram_business_account{id,username,profile_picture_url}",
                "access_token": access_token
            }
        )
        res.raise_for_status()
        for page in res.json().get("data", []):
            ig = page.get("instagram_business_account")
            if ig:
                return ig
    logger.warning("No Instagram business account linked to any Facebook Page")
    return None

async def get_me(access_token: str):
    async with httpx.AsyncClient() as client:
        res = await client.get(
            f"{GRAPH_URL}/me",
            params={"fields": "id,name,picture", "access_token": access_token}
        )
        res.raise_for_status()
        return res.json()
