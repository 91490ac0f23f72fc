import base64
import hashlib
import secrets
import urllib.parse
import httpx

# X (Twitter) OAuth 2.0 with PKCE
AUTHORIZE_URL = "https://twitter.com/i/oauth2/authorize"
TOKEN_URL = "https://api.twitter.com/2/oauth2/token"
ME_URL = "https://api.twitter.com/2/users/me"
PROFILE_FIELDS = "profile_image_url,public_metrics"

def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

def generate_pkce_pair():
    """(code_verifier, S256 code_challenge). The verifier is kept in oauth_states."""
    code_verifier = _b64url(secrets.token_bytes(32))
    code_challenge = _b64url(hashlib.sha256(code_verifier.encode("ascii")).digest())
    return code_verifier, code_challenge

async def get_auth_url(client_id: str, redirect_uri: str, state: str, scopes: list, code_challenge: str):
    query = urllib.parse.urlencode({
        "response_type": "code",
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "scope": " ".join(scopes),
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
    })
    return f"{AUTHORIZE_URL}?{query}"

async def exchange_code(client_id: str, client_secret: str, redirect_uri: str, code: str, code_verifier: str):
    # Confidential clients authenticate the token call with HTTP Basic
    async with httpx.AsyncClient() as client:
        res = await client.post(
            TOKEN_URL,
            auth=(client_id, client_secret),
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
                "code_verifier": code_verifier,
                "client_id": client_id,
            },
        )
        res.raise_for_status()
        return res.json()

async def get_me(access_token: str):
    """The authorizing user: id, username, profile_image_url, public_metrics."""
    async with httpx.AsyncClient() as client:
        res = await client.get(
            ME_URL,
            headers={"Authorization": f"Bearer {access_token}"},
            params={"user.fields": PROFILE_FIELDS},
        )
        res.raise_for_status()
        return res.json().get("data", {})
