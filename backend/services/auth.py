"""
Credential handling: password hashing, access/refresh token pairs and the
request dependency that resolves the caller's hospital context.
"""
import logging
from datetime import datetime, timezone, timedelta

import bcrypt
import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from database import get_db
from config import (
    JWT_SECRET, JWT_REFRESH_SECRET, JWT_ALGORITHM, JWT_EXPIRES_MINUTES, JWT_REFRESH_EXPIRES_DAYS
)

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

ACCESS = "access"
REFRESH = "refresh"


class InvalidToken(Exception):
    pass


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=12)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # stored hash is not a bcrypt hash
        return False


def _encode(user: dict, token_type: str, lifetime: timedelta, secret: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user["id"],
        "email": user["email"],
        "role": user["role"],
        "hospital_id": user["hospital_id"],
        "type": token_type,
        "iat": now,
        "exp": now + lifetime,
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def create_tokens(user: dict) -> dict:
    """Issue an access/refresh pair for a user document."""
    return {
        "access_token": _encode(user, ACCESS, timedelta(minutes=JWT_EXPIRES_MINUTES), JWT_SECRET),
        "refresh_token": _encode(user, REFRESH, timedelta(days=JWT_REFRESH_EXPIRES_DAYS), JWT_REFRESH_SECRET),
        "token_type": "bearer",
    }


def _decode(token: str, token_type: str, secret: str) -> dict:
    try:
        payload = jwt.decode(
            token, secret, algorithms=[JWT_ALGORITHM],
            options={"require": ["exp", "sub", "hospital_id"]}
        )
    except jwt.PyJWTError as e:
        raise InvalidToken(str(e)) from e
    if payload.get("type") != token_type:
        raise InvalidToken(f"Expected a {token_type} token")
    return payload


def decode_access_token(token: str) -> dict:
    return _decode(token, ACCESS, JWT_SECRET)


def decode_refresh_token(token: str) -> dict:
    return _decode(token, REFRESH, JWT_REFRESH_SECRET)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db=Depends(get_db)
) -> dict:
    """
    Resolve the bearer token to {id, email, role, hospital_id}.

    The staff record is read on every request, so deactivation and role
    changes apply before the access token expires.
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        payload = decode_access_token(credentials.credentials)
    except InvalidToken as e:
        logger.debug("Rejected access token: %s", e)
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    user = await db.users.find_one(
        {"id": payload["sub"]}, {"_id": 0, "password_hash": 0}
    )
    if not user:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    if not user.get("is_active", True):
        raise HTTPException(status_code=403, detail="Account is deactivated")

    return {
        "id": user["id"],
        "email": user["email"],
        "role": user["role"],
        "hospital_id": user["hospital_id"],
    }
