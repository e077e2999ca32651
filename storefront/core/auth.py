# storefront/core/auth.py
import logging
import uuid
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from storefront.core.config import get_settings
from storefront.database import get_session
from storefront.models.user import User

logger = logging.getLogger(__name__)
settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can answer with our own 401 message.
bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify an access token (JWT) issued by the identity service.

    Verification:
      - signature (HS256 using JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified

    Args:
        token: raw JWT from the Authorization header.

    Returns:
        Decoded JWT claims.

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, token failed",
        )


def _default_name_from_email(email: str) -> str:
    """
    Derive a default display name from email if the identity service
    did not provide one.
    """
    if "@" in email:
        return email.split("@", 1)[0]
    return email


def _claims_to_identity(payload: dict[str, Any]) -> tuple[uuid.UUID, str]:
    sub = payload.get("sub")
    email = payload.get("email")

    if not sub or not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub/email",
        )

    try:
        return uuid.UUID(sub), email
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sub in token",
        )


def _get_or_provision_user(
    session: Session,
    user_id: uuid.UUID,
    email: str,
    name: str | None,
) -> User:
    """
    Load the local user row, creating a minimal one with role "user" on
    first sight. Admins are promoted on the identity side, never here.
    """
    user = session.get(User, user_id)
    if user is not None:
        return user

    user = User(
        id=user_id,
        email=email,
        name=name or _default_name_from_email(email),
        role="user",
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # First two requests of a new identity raced on the insert
        session.rollback()
        return session.get(User, user_id)
    session.refresh(user)
    logger.info("Provisioned user %s (%s)", user_id, email)
    return user


def require_auth(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    """
    Resolve the caller from a bearer JWT; every cart, order and wishlist
    route depends on this.

    The identity is re-derived from the token on every request; nothing
    about the caller is trusted from client-held state.

    Raises:
        HTTPException(401): no token, or a token that fails verification
        or lacks sub/email.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authorized, no token",
        )

    payload = decode_access_token(credentials.credentials)
    user_id, email = _claims_to_identity(payload)
    return _get_or_provision_user(session, user_id, email, payload.get("name"))


def require_admin(user: User = Depends(require_auth)) -> User:
    """
    Enforce admin role.

    Raises:
        HTTPException(403): if role is not admin.
    """
    if user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized as an admin",
        )
    return user
