"""
Caller identity.

Sign-in happens at the external auth provider; this module only verifies the
bearer token it issues and turns the claims into a CallerIdentity.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from jose import jwt, JWTError

from boxtracker.core.config import settings
from boxtracker.core.time_utils import get_utc_now


@dataclass(frozen=True)
class CallerIdentity:
    uid: str
    email: Optional[str] = None
    name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.email or self.uid


def create_access_token(
    uid: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    expire = get_utc_now() + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"sub": str(uid), "exp": expire}
    if email:
        to_encode["email"] = email
    if name:
        to_encode["name"] = name
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ACCESS_TOKEN_ALGORITHM)


def decode_access_token(token: str) -> Optional[CallerIdentity]:
    """Return the caller for a valid token, None otherwise."""
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.ACCESS_TOKEN_ALGORITHM]
        )
    except JWTError:
        return None
    subject = payload.get("sub")
    if not subject:
        return None
    return CallerIdentity(uid=str(subject), email=payload.get("email"), name=payload.get("name"))
