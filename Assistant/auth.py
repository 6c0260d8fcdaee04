import logging
import os
import time
from typing import Any, Dict, Optional

import requests
from fastapi import HTTPException, Request
from jose import JWTError, jwt

logger = logging.getLogger(__name__)

_JWKS_CACHE: Optional[Dict[str, Any]] = None
_JWKS_CACHE_TS: float = 0.0
_JWKS_TTL_SECONDS: int = 300


# Fetches JWKS keys (cached for a short TTL) so RS256 tokens can be validated
def get_jwks(jwks_url: str):
    global _JWKS_CACHE, _JWKS_CACHE_TS
    now = time.time()
    if _JWKS_CACHE is not None and (now - _JWKS_CACHE_TS) < _JWKS_TTL_SECONDS:
        return _JWKS_CACHE.get("keys", [])
    try:
        response = requests.get(jwks_url, timeout=3.0)
        response.raise_for_status()
        data = response.json()
        _JWKS_CACHE = data
        _JWKS_CACHE_TS = now
        return data.get("keys", [])
    except (requests.RequestException, ValueError) as e:
        if _JWKS_CACHE is not None:
            logger.warning("auth.jwks.stale: serving cached keys after fetch error: %s", e)
            return _JWKS_CACHE.get("keys", [])
        raise HTTPException(status_code=503, detail=f"Unable to fetch JWKS: {str(e)}")


# Finds the JWK that matches the JWT header `kid`
def get_public_key(token: str, jwks_url: str):
    unverified_header = jwt.get_unverified_header(token)
    for key in get_jwks(jwks_url):
        if key.get("kid") == unverified_header.get("kid"):
            return key
    raise HTTPException(status_code=401, detail="Public key not found.")


# Chooses the verification key: JWKS (RS256) when JWT_JWKS_URL is set, else the shared JWT_SECRET
def _resolve_key(token: str) -> tuple[Any, list[str], Optional[str], Optional[str]]:
    jwks_url = os.getenv("JWT_JWKS_URL")
    audience = os.getenv("JWT_AUDIENCE") or None
    if jwks_url:
        issuer = jwks_url.split("/.well-known/")[0]
        return get_public_key(token, jwks_url), ["RS256"], audience, issuer

    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise HTTPException(status_code=500, detail="JWT_SECRET or JWT_JWKS_URL must be configured.")
    return secret, [os.getenv("JWT_ALGORITHM") or "HS256"], audience, None


# Verifies the bearer token from the Authorization header and returns decoded JWT claims
def verify_jwt(request: Request) -> dict:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid token.")

    token = auth_header.split(" ", 1)[1].strip()
    if token.count(".") != 2:
        raise HTTPException(status_code=401, detail="Token is not a valid JWT.")

    try:
        key, algorithms, audience, issuer = _resolve_key(token)
        return jwt.decode(
            token,
            key,
            algorithms=algorithms,
            audience=audience,
            issuer=issuer,
            options={"verify_aud": False} if not audience else {},
        )
    except JWTError as e:
        raise HTTPException(status_code=401, detail=f"Token verification failed: {str(e)}")


# FastAPI dependency: the caller's user id (`sub`, or `id` for tokens issued by the legacy API)
def get_current_user_id(request: Request) -> str:
    claims = verify_jwt(request)
    user_id = claims.get("sub") or claims.get("id")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token has no subject.")
    return str(user_id)
