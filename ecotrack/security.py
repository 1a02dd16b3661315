# ecotrack/security.py
import logging
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from . import config
from .errors import Unauthenticated, TokenExpired

log = logging.getLogger("ecotrack.security")

pwd_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_ctx.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_ctx.verify(password, password_hash)


def create_access_token(email: str, expires_minutes: int = None) -> str:
    minutes = config.JWT_EXPIRES_MINUTES if expires_minutes is None else expires_minutes
    now = datetime.now(timezone.utc)
    claims = {"sub": email, "iat": now, "exp": now + timedelta(minutes=minutes)}
    return jwt.encode(claims, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """Return the email carried by a valid token."""
    try:
        claims = jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except ExpiredSignatureError:
        log.warning("rejected expired token")
        raise TokenExpired()
    except JWTError as e:
        log.warning("rejected invalid token: %s", e)
        raise Unauthenticated("Invalid token.")
    email = claims.get("sub")
    if not email:
        log.warning("token payload has no subject")
        raise Unauthenticated("Invalid token payload.")
    return email
