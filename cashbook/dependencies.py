"""
FastAPI dependencies for authentication and authorization.

There is exactly one way to authenticate a request: require_claims().
It returns a dependency that

  1. reads the "Authorization: Bearer <token>" header
  2. verifies the JWT signature and expiry
  3. checks that every required claim is present and truthy
  4. resolves the "sub" claim to an active User

and is instantiated once per access level:

  get_current_user = require_claims()          any valid token
  require_admin    = require_claims("admin")   token with admin: true

Failure modes:
  - no token                         -> AuthError (401)
  - bad signature / expired / no sub -> ForbiddenError (403)
  - required claim missing or false  -> ForbiddenError (403)
  - unknown or deactivated user      -> AuthError (401)
"""

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cashbook.database import get_db
from cashbook.exceptions import AuthError, ForbiddenError
from cashbook.models.user import User
from cashbook.security import decode_access_token

# auto_error=False: a missing header is reported by require_claims() as 401
bearer_scheme = HTTPBearer(auto_error=False)


def require_claims(*claims: str):
    """
    Build an auth dependency that demands the given token claims.

    Args:
        *claims: Claim names that must be present and truthy in the payload.

    Returns:
        An async dependency resolving to the authenticated User.
    """

    async def dependency(
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
        db: AsyncSession = Depends(get_db),
    ) -> User:
        if credentials is None or not credentials.credentials:
            raise AuthError("Access denied. No token provided.")

        try:
            payload = decode_access_token(credentials.credentials)
            user_code = int(payload["sub"])
        except (JWTError, KeyError, TypeError, ValueError):
            raise ForbiddenError("Invalid token.")

        for claim in claims:
            if not payload.get(claim):
                raise ForbiddenError(f"Access denied. Missing required claim: {claim}")

        result = await db.execute(select(User).where(User.code == user_code))
        user = result.scalar_one_or_none()
        if user is None or not user.is_active:
            raise AuthError("User not found or inactive")

        return user

    return dependency


get_current_user = require_claims()
require_admin = require_claims("admin")
