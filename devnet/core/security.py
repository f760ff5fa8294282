# devnet/core/security.py

from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Header
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from devnet.core.config import settings
from devnet.core.errors import AuthenticationError

# Password hashing context using bcrypt
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

BEARER_PREFIX = "Bearer "


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verifies a plaintext password against its bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


def hash_password(password: str) -> str:
    """Hashes a password using bcrypt."""
    return pwd_context.hash(password)


def create_access_token(subject: Union[str, Any], expires_delta: timedelta = None) -> str:
    """
    Creates a JWT access token whose `sub` claim is the user id.
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode = {"exp": expire, "sub": str(subject)}
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str) -> str:
    """
    Verifies the token signature and expiry and returns its subject.
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise AuthenticationError("Token expired. Please login again.")
    except JWTError:
        raise AuthenticationError("Invalid token.")

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError("Invalid token.")
    return subject


def _user_id_from_header(authorization: str) -> ObjectId:
    if not authorization.startswith(BEARER_PREFIX):
        raise AuthenticationError('Invalid token format. Use "Bearer [token]"')

    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise AuthenticationError('Invalid token format. Use "Bearer [token]"')

    subject = decode_access_token(token)
    try:
        return ObjectId(subject)
    except (InvalidId, TypeError):
        raise AuthenticationError("Invalid token.")


async def get_current_user_id(authorization: Optional[str] = Header(None)) -> ObjectId:
    """
    Dependency resolving the authenticated user id from `Authorization: Bearer <jwt>`.
    The token is trusted as-is; the user document is not loaded here.
    """
    if not authorization:
        raise AuthenticationError("Access denied. No token provided.")
    return _user_id_from_header(authorization)


async def get_optional_user_id(authorization: Optional[str] = Header(None)) -> Optional[ObjectId]:
    """
    Same as `get_current_user_id` for routes that are readable anonymously.
    A header that is present but broken is still rejected.
    """
    if not authorization:
        return None
    return _user_id_from_header(authorization)
