from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not password_hash:
        return False
    try:
        return pwd_context.verify(password, password_hash)
    except (ValueError, TypeError):
        # unknown or malformed hash format
        return False


def create_access_token(subject: str, secret: str, algorithm: str, expires_minutes: int) -> str:
    to_encode = {"sub": str(subject), "exp": datetime.utcnow() + timedelta(minutes=expires_minutes)}
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str) -> Optional[str]:
    """
    Verify a signed JWT and return its 'sub' claim, or None if the token is
    missing, malformed, expired or signed with another key.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        return None
    sub = payload.get("sub")
    return str(sub) if sub else None
