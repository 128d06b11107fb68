"""
Authentication - password hashing, JWT sign/verify and the request identity
dependency.
"""

import binascii
import hashlib
import hmac
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt

from agroconnect.config import get_settings
from agroconnect.error_handling import AuthenticationError, InvalidArgumentError, InvalidStateError
from agroconnect.models import (
    ActivityType,
    PasswordChange,
    Requester,
    TokenResponse,
    User,
    UserCreate,
    UserType,
    UserUpdate,
)
from .activity import ActivityLogger
from .store import Store, StoreSession

logger = logging.getLogger(__name__)

# Stored format: "pbkdf2_sha256$<iterations>$<salt_hex>$<hash_hex>"
_PBKDF2_ALGO_PREFIX = "pbkdf2_sha256"
_PBKDF2_ITERATIONS = 100_000
_PBKDF2_SALT_BYTES = 16

bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Return a salted PBKDF2-SHA256 hash string for the given password."""
    salt = os.urandom(_PBKDF2_SALT_BYTES)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, _PBKDF2_ITERATIONS)
    salt_hex = binascii.hexlify(salt).decode("ascii")
    hash_hex = binascii.hexlify(dk).decode("ascii")
    return f"{_PBKDF2_ALGO_PREFIX}${_PBKDF2_ITERATIONS}${salt_hex}${hash_hex}"


def verify_password(password: str, encoded: str) -> bool:
    """Verify a password against a stored hash. Malformed hashes never match."""
    try:
        prefix, iter_str, salt_hex, hash_hex = encoded.split("$", 3)
        if prefix != _PBKDF2_ALGO_PREFIX:
            return False
        iterations = int(iter_str)
        salt = binascii.unhexlify(salt_hex.encode("ascii"))
        expected = binascii.unhexlify(hash_hex.encode("ascii"))
    except (AttributeError, ValueError, binascii.Error):
        return False

    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return hmac.compare_digest(dk, expected)


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a JWT carrying the user's id, email and type."""
    auth = get_settings().auth
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=auth.expires_minutes))
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "user_type": user.user_type.value,
        "exp": expire,
    }
    return jwt.encode(claims, auth.secret, algorithm=auth.algorithm)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify a JWT and return its claims.

    Raises:
        AuthenticationError: Token expired, malformed or badly signed
    """
    auth = get_settings().auth
    try:
        claims = jwt.decode(token, auth.secret, algorithms=[auth.algorithm])
    except ExpiredSignatureError:
        raise AuthenticationError("Token expired. Please log in again.")
    except JWTError:
        raise AuthenticationError("Invalid token.")

    if "sub" not in claims:
        raise AuthenticationError("Invalid token.")
    return claims


def requester_from_token(token: str) -> Requester:
    """Build the explicit request identity from a bearer token"""
    claims = decode_access_token(token)
    try:
        user_id = UUID(claims["sub"])
        user_type = UserType(claims["user_type"]) if claims.get("user_type") else None
    except ValueError:
        raise AuthenticationError("Invalid token.")
    return Requester(id=user_id, user_type=user_type)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Requester:
    """FastAPI dependency: the authenticated requester"""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Not authorized. Token missing or malformed.")
    return requester_from_token(credentials.credentials)


class AuthService:
    """Register, log in and manage user accounts"""

    def __init__(self, store: Store, activity: Optional[ActivityLogger] = None):
        self.store = store
        self.activity = activity or ActivityLogger(store)

    async def register(self, data: UserCreate) -> TokenResponse:
        """
        Create an account and return a session token.

        Raises:
            InvalidStateError: Email already in use
        """
        async with self.store.transaction() as session:
            if await session.get_credentials(data.email):
                raise InvalidStateError("This email is already in use.")
            user = await session.insert_user(data, hash_password(data.password))

        logger.info(f"Registered user {user.id} ({user.user_type.value})")
        return TokenResponse(token=create_access_token(user), user=user)

    async def login(self, email: str, password: str) -> TokenResponse:
        """
        Check credentials and return a session token.

        Raises:
            AuthenticationError: Unknown email, wrong password or inactive account
        """
        async with self.store.transaction() as session:
            found = await session.get_credentials(email)

        if not found or not verify_password(password, found[1]):
            logger.warning(f"Authentication failed for {email}")
            raise AuthenticationError("Incorrect email or password.")

        user = found[0]
        if not user.active:
            logger.warning(f"Login attempt on inactive account {user.id}")
            raise AuthenticationError("Account deactivated. Please contact support.")

        await self.activity.record(user.id, ActivityType.LOGIN, "Logged in")
        return TokenResponse(token=create_access_token(user), user=user)

    async def me(self, requester: Requester) -> User:
        """
        Current user's full record.

        Raises:
            AuthenticationError: Token refers to a missing or deactivated user
        """
        async with self.store.transaction() as session:
            return await self._load_active_user(session, requester.id)

    async def update_profile(self, requester: Requester, data: UserUpdate) -> User:
        """
        Change the provided profile fields; omitted fields are kept.

        Raises:
            AuthenticationError: Account missing or deactivated
        """
        fields = data.model_dump(exclude_unset=True, exclude_none=True)

        async with self.store.transaction() as session:
            user = await self._load_active_user(session, requester.id, for_update=True)
            if fields:
                user = await session.update_user(requester.id, fields)

        if fields:
            logger.info(f"User {requester.id} updated profile fields {sorted(fields)}")
            await self.activity.record(
                requester.id,
                ActivityType.PROFILE_UPDATED,
                "Updated profile",
                metadata={"fields": sorted(fields)},
            )
        return user

    async def change_password(self, requester: Requester, data: PasswordChange) -> None:
        """
        Replace the password after checking the current one.

        Raises:
            AuthenticationError: Account missing or deactivated, or the
                current password is wrong
            InvalidArgumentError: New password equals the current one
        """
        if data.new_password == data.current_password:
            raise InvalidArgumentError("The new password must differ from the current one")

        async with self.store.transaction() as session:
            await self._load_active_user(session, requester.id, for_update=True)
            stored = await session.get_password_hash(requester.id)
            if not stored or not verify_password(data.current_password, stored):
                logger.warning(f"Password change with wrong current password for {requester.id}")
                raise AuthenticationError("Current password is incorrect.")
            await session.update_password(requester.id, hash_password(data.new_password))

        logger.info(f"User {requester.id} changed password")
        await self.activity.record(requester.id, ActivityType.PASSWORD_CHANGED, "Changed password")

    async def delete_account(self, requester: Requester) -> None:
        """
        Deactivate the account. Data is kept; the user can no longer log in.

        Raises:
            AuthenticationError: Account missing or already deactivated
        """
        async with self.store.transaction() as session:
            await self._load_active_user(session, requester.id, for_update=True)
            await session.update_user(requester.id, {"active": False})

        logger.info(f"User {requester.id} deactivated their account")
        await self.activity.record(
            requester.id, ActivityType.ACCOUNT_DEACTIVATED, "Deactivated account"
        )

    async def _load_active_user(
        self,
        session: StoreSession,
        user_id: UUID,
        for_update: bool = False,
    ) -> User:
        user = await session.get_user(user_id, for_update=for_update)
        if not user:
            raise AuthenticationError("User not found.")
        if not user.active:
            raise AuthenticationError("Account deactivated. Please contact support.")
        return user
