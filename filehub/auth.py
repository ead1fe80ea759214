"""
Authentication Module for FileHub.

Provides:
- Password hashing (bcrypt with unique salts)
- JWT access token creation and verification
"""

from datetime import datetime, timedelta
from passlib.context import CryptContext
from jose import JWTError, jwt

from .config import settings
from .constants import JWT_ALGORITHM, ACCESS_TOKEN_TYPE

SECRET_KEY = settings.secret_key
TOKEN_EXPIRE_MINUTES = settings.token_expire_minutes

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# =============================================================================
# Password Hashing
# =============================================================================

def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with automatic per-user salt generation.

    Args:
        password: Plain text password

    Returns:
        Bcrypt hash string
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash.

    Args:
        plain_password: The plain text password to verify
        hashed_password: The bcrypt hash to check against

    Returns:
        True if password matches, False otherwise
    """
    return pwd_context.verify(plain_password, hashed_password)

# =============================================================================
# JWT Token Management
# =============================================================================

def create_access_token(data: dict) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary with user data (e.g., {"sub": profile_id})

    Returns:
        JWT token string
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(minutes=TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire, "typ": ACCESS_TOKEN_TYPE})

    return jwt.encode(to_encode, SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT token.

    Raises:
        ValueError: If token is invalid or expired
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[JWT_ALGORITHM])
    except JWTError:
        raise ValueError('Invalid token')

    # Signed storage URLs share the key; only access tokens authenticate
    if payload.get("typ") != ACCESS_TOKEN_TYPE:
        raise ValueError('Invalid token')
    return payload
