import time
from typing import Dict, Optional

from cachetools import TTLCache
from cachetools.keys import hashkey
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.config import settings
from app.core.exceptions import AuthenticationError
from app.core.logging_config import get_logger

from .utils import verify_token

logger = get_logger(__name__)

# Create a security instance; missing credentials become our own 401 envelope
security = HTTPBearer(auto_error=False)


class TokenCache:
    """
    In-memory cache of decoded bearer tokens.

    Entries live for TOKEN_CACHE_TTL_SECONDS but are never served past the
    token's own ``exp`` claim.
    """
    _instance = None

    def __new__(cls, *args, **kwargs):
        if not cls._instance:
            cls._instance = super(TokenCache, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self.cache = TTLCache(
            maxsize=settings.TOKEN_CACHE_MAX_SIZE,
            ttl=settings.TOKEN_CACHE_TTL_SECONDS,
        )
        self._initialized = True

    def get(self, token: str) -> Optional[Dict]:
        payload = self.cache.get(hashkey(token))
        if payload is None:
            return None
        if payload.get("exp") is not None and payload["exp"] <= time.time():
            self.cache.pop(hashkey(token), None)
            return None
        return payload

    def store(self, token: str, payload: Dict) -> None:
        self.cache[hashkey(token)] = payload

    def clear(self) -> None:
        self.cache.clear()


def decode_bearer_token(token: str, use_cache: bool = True) -> Dict:
    cache = TokenCache()
    if use_cache:
        cached = cache.get(token)
        if cached is not None:
            logger.debug("Token payload served from cache")
            return cached

    payload = verify_token(token)
    if not payload.get("user_id"):
        raise AuthenticationError("Invalid authentication token", code="INVALID_TOKEN")
    if use_cache:
        cache.store(token, payload)
    return payload


def validate_bearer_token(use_cache: bool = True):
    async def get_token_data(
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    ) -> Dict:
        if credentials is None or not credentials.credentials:
            raise AuthenticationError("Authentication required", code="NOT_AUTHENTICATED")
        return decode_bearer_token(credentials.credentials, use_cache=use_cache)

    return get_token_data
