import hashlib
import hmac
import logging
import secrets
from typing import Optional
from fastapi import Depends, HTTPException, Header
from sqlalchemy import select
from sqlalchemy.orm import Session
from db import get_session
from models import User

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 200_000


def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${digest.hex()}"

def check_password(password: str, hashed: str) -> bool:
    salt_hex, _, digest_hex = hashed.partition("$")
    if not digest_hex:
        return False
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), bytes.fromhex(salt_hex), PBKDF2_ITERATIONS)
    return hmac.compare_digest(digest.hex(), digest_hex)

def verify_credentials(s: Session, username: str, password: str) -> Optional[User]:
    user = s.scalar(select(User).where(User.username == username))
    if user is None or not check_password(password, user.password_hash):
        logger.warning("Failed login for %r", username)
        return None
    return user

def create_token(s: Session, user: User) -> str:
    # new token on every login, the previous one stops working
    user.token = secrets.token_hex(32)
    s.commit()
    return user.token

def get_current_user(Authorization: Optional[str] = Header(None), s: Session = Depends(get_session)) -> User:
    if not Authorization or not Authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="No token")
    token = Authorization.split(" ", 1)[1].strip()
    user = s.scalar(select(User).where(User.token == token)) if token else None
    if user is None:
        raise HTTPException(status_code=401, detail="Bad token")
    return user
