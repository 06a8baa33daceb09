"""Credentials: password hashing, bearer token issuance and verification."""
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
import logging

import bcrypt
import jwt
from fastapi.concurrency import run_in_threadpool
from pymongo.errors import DuplicateKeyError

from app.core.config import settings
from app.core.exceptions import AuthenticationError, ConflictError
from app.schemas.user import UserInDB
from app.services.users import user_service

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """CPU-bound; async callers run it through run_in_threadpool."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def issue_credential(user_id: str, issued_at: Optional[datetime] = None) -> str:
    """Sign a bearer token for ``user_id`` that expires JWT_EXPIRES_DAYS after issuance."""
    issued_at = issued_at or datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": issued_at,
        "exp": issued_at + timedelta(days=settings.JWT_EXPIRES_DAYS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_credential(token: Optional[str]) -> Optional[str]:
    """
    Return the user id carried by ``token``.

    Tampered, expired and malformed tokens return None; verification failure
    is an expected outcome here, not an error.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired token")
        return None
    except jwt.PyJWTError:
        return None

    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        return None
    return user_id


class AuthService:
    async def register(self, email: str, password: str, name: Optional[str] = None) -> Tuple[UserInDB, str]:
        email = email.strip().lower()

        if await user_service.get_by_email(email):
            raise ConflictError("An account with this email already exists")

        password_hash = await run_in_threadpool(hash_password, password)
        try:
            user = await user_service.create_user(email, password_hash, name or None)
        except DuplicateKeyError:
            # Lost the race against a concurrent registration of the same email
            raise ConflictError("An account with this email already exists")

        logger.info(f"Registered user {user.id}")
        return user, issue_credential(user.id)

    async def login(self, email: str, password: str) -> Tuple[UserInDB, str]:
        user = await user_service.get_by_email(email.strip().lower())
        if not user or not await run_in_threadpool(verify_password, password, user.password_hash):
            raise AuthenticationError("Invalid email or password")
        return user, issue_credential(user.id)

    async def resolve_token(self, token: Optional[str]) -> Optional[UserInDB]:
        """Resolve a bearer token to its user, or None when either is gone."""
        user_id = verify_credential(token)
        if not user_id:
            return None
        return await user_service.get_by_id(user_id)


auth_service = AuthService()
