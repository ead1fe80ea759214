"""
Authentication Router for FileHub.

Endpoints:
- POST /users - Register new account
- POST /token - Login and get JWT token
- GET /me - Current profile
- POST /me/password - Change password
"""

import logging
from fastapi import APIRouter, Depends, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..db_models import DBProfile
from ..dependencies import get_current_user
from ..models import LoginRequest, PasswordChange, Profile, ProfileCreate, Token
from ..profile_service import ProfileService

# Initialize logger
logger = logging.getLogger(__name__)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)

REGISTER_RATE_LIMIT = "1000/minute" if settings.testing else "3/minute"
LOGIN_RATE_LIMIT = "1000/minute" if settings.testing else "5/minute"

# Create router
router = APIRouter(
    prefix="",
    tags=["authentication"],
    responses={401: {"description": "Unauthorized"}},
)

# =============================================================================
# Registration Endpoint
# =============================================================================

@router.post("/users", response_model=Profile, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_RATE_LIMIT)
async def create_user(
    request: Request,
    profile_create: ProfileCreate,
    db: Session = Depends(get_db)
):
    """
    Register a new account.

    Rate limited to 3 attempts per minute in production (1000/min in tests).

    Raises:
        400: If the email is already registered
    """
    return ProfileService(db).register(
        profile_create.email,
        profile_create.password,
        profile_create.full_name,
    )

# =============================================================================
# Login Endpoint
# =============================================================================

@router.post("/token", response_model=Token)
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    credentials: LoginRequest,
    db: Session = Depends(get_db)
) -> Token:
    """
    Login and get JWT token.

    Rate limited to 5 attempts per minute in production (1000/min in tests)
    to slow down brute force attacks.

    Raises:
        401: If credentials are invalid
    """
    access_token = ProfileService(db).login(credentials.email, credentials.password)
    return Token(access_token=access_token)

# =============================================================================
# Current Profile Endpoints
# =============================================================================

@router.get("/me", response_model=Profile)
async def read_me(current_user: DBProfile = Depends(get_current_user)):
    return current_user


@router.post("/me/password")
@limiter.limit(LOGIN_RATE_LIMIT)
async def change_password(
    request: Request,
    change: PasswordChange,
    current_user: DBProfile = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Change the caller's password.

    Raises:
        400: If the current password is wrong
    """
    ProfileService(db).change_password(current_user, change.current_password, change.new_password)
    return {"message": "Password updated"}
