from datetime import datetime, timedelta, timezone
from typing import Optional, Dict

import jwt

from app.config import settings
from app.core.exceptions import AuthenticationError

# Configuration - use centralized settings
SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES


def create_access_token(
    user_id: str,
    user_type: str,
    custom_claims: Optional[Dict] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    to_encode = {
        "user_id": user_id,
        "token_type": "access",
        "user_type": user_type,
    }

    if custom_claims:
        to_encode.update(custom_claims)

    to_encode = {k: v for k, v in to_encode.items() if v is not None}

    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "iat": now})

    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> Dict:
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])

    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired", code="TOKEN_EXPIRED")

    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid authentication token", code="INVALID_TOKEN")
