"""
Password hashing, bearer tokens and the authentication dependencies.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, Optional

import jwt
from bson import ObjectId
from fastapi import Request
from passlib.context import CryptContext

from config import settings
from database import utcnow
from errors import Unauthenticated

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    try:
        return pwd_context.verify(password, hashed)
    except ValueError:
        # Not a hash this context knows
        return False


def is_owner(actor_id: Any, owner_id: Any) -> bool:
    """True when ``actor_id`` and ``owner_id`` name the same identity."""
    if actor_id is None or owner_id is None:
        return False
    return str(actor_id) == str(owner_id)


@dataclass
class Identity:
    """The authenticated caller."""

    id: ObjectId
    username: str = ""


class TokenService:
    def __init__(self, access_secret: Optional[str] = None, refresh_secret: Optional[str] = None,
                 access_expiry: Optional[timedelta] = None, refresh_expiry: Optional[timedelta] = None):
        self.access_secret = access_secret or settings.access_token_secret
        self.refresh_secret = refresh_secret or settings.refresh_token_secret
        self.access_expiry = access_expiry or timedelta(minutes=settings.access_token_expiry_minutes)
        self.refresh_expiry = refresh_expiry or timedelta(days=settings.refresh_token_expiry_days)

    def issue_access_token(self, user: Dict[str, Any]) -> str:
        payload = {
            "_id": str(user["_id"]),
            "email": user.get("email"),
            "username": user.get("username"),
            "full_name": user.get("full_name"),
            "type": "access",
            "exp": utcnow() + self.access_expiry,
        }
        return jwt.encode(payload, self.access_secret, algorithm=ALGORITHM)

    def issue_refresh_token(self, user: Dict[str, Any]) -> str:
        payload = {
            "_id": str(user["_id"]),
            "type": "refresh",
            "jti": str(ObjectId()),
            "iat": utcnow(),
            "exp": utcnow() + self.refresh_expiry,
        }
        return jwt.encode(payload, self.refresh_secret, algorithm=ALGORITHM)

    def _decode(self, token: str, secret: str, token_type: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, secret, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("Token has expired")
        except jwt.InvalidTokenError:
            raise Unauthenticated("Invalid token")
        if payload.get("type") != token_type or not ObjectId.is_valid(payload.get("_id", "")):
            raise Unauthenticated("Invalid token")
        return payload

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, self.access_secret, "access")

    def decode_refresh_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, self.refresh_secret, "refresh")


def extract_token(request: Request) -> Optional[str]:
    """Bearer token from the Authorization header, falling back to the accessToken cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header[len("Bearer "):].strip()
        if token:
            return token
    return request.cookies.get("accessToken") or None


def _resolve_identity(request: Request) -> Identity:
    token = extract_token(request)
    if not token:
        raise Unauthenticated("Unauthorized request")

    tokens: TokenService = request.app.state.tokens
    payload = tokens.decode_access_token(token)

    database = request.app.state.database
    user = database["users"].find_one({"_id": ObjectId(payload["_id"])}, {"username": 1})
    if not user:
        raise Unauthenticated("Invalid access token")
    return Identity(id=user["_id"], username=user.get("username", ""))


def require_user(request: Request) -> Identity:
    """Dependency for routes that need an authenticated caller."""
    try:
        return _resolve_identity(request)
    except Unauthenticated as e:
        logger.warning(f"Rejected request to {request.url.path}: {e.message}")
        raise


def optional_user(request: Request) -> Optional[Identity]:
    """Dependency for routes open to guests; any token failure means guest."""
    try:
        return _resolve_identity(request)
    except Unauthenticated as e:
        logger.debug(f"Treating request to {request.url.path} as guest: {e.message}")
        return None
