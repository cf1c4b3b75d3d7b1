from typing import Optional

from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer

from shared.errors import AuthorizationError
from .jwt_handler import TokenClaims, verify_access_token

# Defines the expected header format (Bearer <token>)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/user/login", auto_error=False)

# The storefront client keeps tokens in httpOnly cookies
USER_COOKIE = "token"
SELLER_COOKIE = "sellerToken"


def _claims_or_401(token: Optional[str]) -> TokenClaims:
    claims = verify_access_token(token) if token else None
    if claims is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not Authorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return claims


async def get_current_user(request: Request, token: str = Depends(oauth2_scheme)) -> int:
    """Dependency to validate the buyer JWT and return the user ID (sub)."""
    claims = _claims_or_401(token or request.cookies.get(USER_COOKIE))

    # Store in request state for downstream use (like rate limiting)
    request.state.user_id = claims.subject
    return claims.subject


async def get_current_seller(request: Request, token: str = Depends(oauth2_scheme)) -> int:
    """Dependency to validate a seller JWT and return the seller ID (sub)."""
    claims = _claims_or_401(request.cookies.get(SELLER_COOKIE) or token)
    if not claims.is_seller:
        raise AuthorizationError("Seller access required")

    request.state.seller_id = claims.subject
    return claims.subject
