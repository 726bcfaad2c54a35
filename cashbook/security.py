"""
JWT utilities.

Tokens are issued by the login service and only verified here. Both sides
share SECRET_KEY and sign with ALGORITHM (HS256 by default). The payload
carries:

  - "sub":        the acting user's code (as a string), standard JWT claim
  - "login_name": the user's login identifier (informational)
  - "admin":      true for users allowed to run cascading deletes
  - "exp":        expiration timestamp, after which the token is rejected

create_access_token() exists for the seeding script and the test suite.
"""

from datetime import datetime, timedelta, timezone

from jose import jwt

from cashbook.config import settings


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Dictionary of claims to encode (must include "sub").
        expires_delta: Optional custom expiration time. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        An encoded JWT string.
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
