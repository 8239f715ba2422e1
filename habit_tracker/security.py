import functools
import logging
import re
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import bcrypt
from jose import JWTError, jwt

from .config import ACCESS_TOKEN_EXPIRE_MINUTES, BCRYPT_ROUNDS, PASSWORD_RULES, SECRET_KEY
from .schemas.user import TokenData, UserRecord

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

# name -> (check, message shown when the check fails)
PASSWORD_POLICY: Dict[str, Tuple[Callable[[str], bool], str]] = {
    "min_length": (
        lambda password: len(password) >= 8,
        "Password must be at least 8 characters long",
    ),
    "max_length": (
        lambda password: len(password) <= 128,
        "Password must be at most 128 characters long",
    ),
    "uppercase": (
        lambda password: re.search(r"[A-Z]", password) is not None,
        "Password must contain at least one uppercase letter",
    ),
    "lowercase": (
        lambda password: re.search(r"[a-z]", password) is not None,
        "Password must contain at least one lowercase letter",
    ),
    "digit": (
        lambda password: re.search(r"\d", password) is not None,
        "Password must contain at least one number",
    ),
    "symbol": (
        lambda password: re.search(r"[^A-Za-z0-9]", password) is not None,
        "Password must contain at least one special character",
    ),
}


def validate_password_strength(password: str, rules: Optional[Iterable[str]] = None) -> List[str]:
    """Return the message of every active rule the password fails."""
    errors = []
    for name in PASSWORD_RULES if rules is None else rules:
        rule = PASSWORD_POLICY.get(name)
        if rule is None:
            logger.warning("Unknown password rule %r ignored", name)
            continue
        check, message = rule
        if not check(password):
            errors.append(message)
    return errors


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    password_bytes = plain_password.encode('utf-8')[:72]
    hashed_bytes = hashed_password.encode('utf-8') if isinstance(hashed_password, str) else hashed_password
    try:
        return bcrypt.checkpw(password_bytes, hashed_bytes)
    except ValueError:
        # Malformed stored hash
        return False


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt directly."""
    password_bytes = password.encode('utf-8')[:72]  # Truncate to 72 bytes (bcrypt limit)
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def create_access_token(user: UserRecord, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed token carrying the user's identity."""
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {
        "userId": user.id,
        "email": user.email,
        "username": user.username,
        "exp": expire,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenData]:
    """Return the token's identity, or None when it is invalid or expired."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None

    user_id = payload.get("userId")
    email = payload.get("email")
    username = payload.get("username")
    if not user_id or not email or not username:
        return None
    return TokenData(user_id=user_id, email=email, username=username)


@functools.lru_cache(maxsize=1)
def dummy_password_hash() -> str:
    """Hash checked for unknown emails so login costs the same either way."""
    return get_password_hash("not-a-real-password")
