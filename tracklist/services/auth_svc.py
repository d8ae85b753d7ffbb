"""
Login against the demo account and the FAMILY_USERS allowlist; JWT issue/verify.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from jose import JWTError, jwt

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TOKEN_TTL = timedelta(days=7)
DEFAULT_SECRET = "change-me-in-production"

DEMO_USERNAME = "demo"
DEMO_PASSWORD = "demo123"


def get_secret() -> str:
    return os.environ.get("JWT_SECRET") or DEFAULT_SECRET


def family_users() -> dict[str, str]:
    """Parse FAMILY_USERS=alice:<bcrypt>,bob:<bcrypt> into {username: hash}."""
    raw = os.environ.get("FAMILY_USERS", "")
    users: dict[str, str] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        username, sep, hashed = entry.partition(":")
        if not sep or not username or not hashed:
            logger.warning("skipping malformed FAMILY_USERS entry for %r", username)
            continue
        users[username] = hashed
    return users


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=10)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # not a bcrypt hash
        return False


def create_access_token(username: str, is_demo: bool, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (expires_delta or TOKEN_TTL)
    payload = {"username": username, "isDemo": is_demo, "exp": expire}
    return jwt.encode(payload, get_secret(), algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Return the user claims, or None when the token is invalid or expired."""
    try:
        payload = jwt.decode(token, get_secret(), algorithms=[ALGORITHM])
    except JWTError:
        return None
    username = payload.get("username")
    if not isinstance(username, str) or not username:
        return None
    return {"username": username, "isDemo": bool(payload.get("isDemo", False))}


def login(username: str, password: str) -> Optional[dict]:
    """Return {token, user} on success, None on bad credentials."""
    if username == DEMO_USERNAME and password == DEMO_PASSWORD:
        is_demo = True
    else:
        hashed = family_users().get(username)
        if not hashed or not verify_password(password, hashed):
            logger.info("failed login for %r", username)
            return None
        is_demo = False
    user = {"username": username, "isDemo": is_demo}
    return {"token": create_access_token(username, is_demo), "user": user}
