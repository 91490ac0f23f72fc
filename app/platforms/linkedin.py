import urllib.parse
import httpx

# Sign In with LinkedIn using OpenID Connect
AUTHORIZE_URL = "https://www.linkedin.com/oauth/v2/authorization"
TOKEN_URL = "https://www.linkedin.com/oauth/v2/accessToken"
USERINFO_URL = "https://api.linkedin.com/v2/userinfo"

async def get_auth_url(client_id: str, redirect_uri: str, state: str, scopes: list):
    query = urllib.parse.urlencode({
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "state": state,
        "scope": " ".join(scopes),
    })
    return f"{AUTHORIZE_URL}?{query}"

async def exchange_code(client_id: str, client_secret: str, redirect_uri: str, code: str):
    async with httpx.AsyncClient() as client:
        res = await client.post(
            TOKEN_URL,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "client_id": client_id,
                "client_secret": client_secret,
            },
        )
        res.raise_for_status()
        return res.json()

async def get_userinfo(access_token: str):
    """OpenID Connect profile: sub, name, picture, email."""
    async with httpx.AsyncClient() as client:
        res = await client.get(USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"})
        res.raise_for_status()
        return res.json()
