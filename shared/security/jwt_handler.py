import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not SECRET_KEY:
    raise ValueError("FATAL ERROR: JWT_SECRET_KEY is not set in the environment!")

ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7)))

SELLER_ROLE = "seller"


@dataclass(frozen=True)
class TokenClaims:
    subject: int
    role: Optional[str] = None

    @property
    def is_seller(self) -> bool:
        return self.role == SELLER_ROLE


def create_access_token(
    subject: int, role: Optional[str] = None, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Mints a token for a buyer (no role) or a seller. Tokens are normally issued
    by the account service; this exists for operators and tests.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    claims = {"sub": str(subject), "exp": expire}
    if role:
        claims["role"] = role
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def create_seller_token(seller_id: int, expires_delta: Optional[timedelta] = None) -> str:
    return create_access_token(seller_id, SELLER_ROLE, expires_delta)


def verify_access_token(token: str) -> Optional[TokenClaims]:
    """Decodes and verifies the JWT. Returns None if invalid, expired or without a numeric subject."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        return TokenClaims(subject=int(payload["sub"]), role=payload.get("role"))
    except (JWTError, KeyError, TypeError, ValueError):
        return None
