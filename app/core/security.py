# app/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

import jwt
from app.core.config import settings

ALGORITHM = "HS256"

# Session issuance belongs to the identity provider. This helper exists so
# tests and ops scripts can mint tokens the bearer dependency will accept.
def create_access_token(
    subject: Union[str, Any], 
    expires_delta: Optional[timedelta] = None,
    data: Optional[dict] = None
) -> str:
    
    # Use timezone-aware UTC
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    
    to_encode = {
        "sub": str(subject),
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "nbf": datetime.now(timezone.utc)
    }
    
    if data:
        to_encode.update(data)

    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt

def decode_token(token: str) -> dict:
    # raises jwt.ExpiredSignatureError / jwt.InvalidTokenError for the caller to map
    return jwt.decode(
        token, 
        settings.SECRET_KEY, 
        algorithms=[ALGORITHM],
        options={"verify_exp": True}
    )
