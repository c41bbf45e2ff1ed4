from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from . import settings
from .identity import Identity

# Security scheme for Bearer token
oauth2_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> Identity:
    """
    Verify a provider-issued access token and return its identity.

    Raises HTTPException(401) for expired, malformed or subject-less tokens.
    """
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            options={"verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired"
        )
    except jwt.InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token"
        )

    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing sub"
        )
    return Identity.from_claims(payload)


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(oauth2_scheme),
) -> Identity:
    """
    Get current authenticated identity from Bearer token.
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No access token found",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_access_token(credentials.credentials)
