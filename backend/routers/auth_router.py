"""Authentication router endpoints."""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from helpers.rate_limiter import LOGIN_RATE_LIMIT, REGISTER_RATE_LIMIT, limiter
from repositories.database import get_db
from services import UserService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register", response_model=schemas.User, status_code=status.HTTP_201_CREATED
)
@limiter.limit(REGISTER_RATE_LIMIT)
async def register(
    request: Request, user: schemas.UserCreate, db: AsyncSession = Depends(get_db)
) -> db_models.User:
    """
    Register a new user.

    A username is generated from the name when none is supplied.
    Rate limited to 3 per minute.
    """
    return await UserService.register(db, user)


@router.post("/login", response_model=schemas.Token)
@limiter.limit(LOGIN_RATE_LIMIT)
async def login(
    request: Request,
    credentials: schemas.UserLogin,
    db: AsyncSession = Depends(get_db),
) -> schemas.Token:
    """
    Login with email or username. Rate limited to 5 per minute.

    Domain exceptions are caught by centralized exception handlers.
    """
    return await UserService.login(db, credentials.credential, credentials.password)


@router.get("/me", response_model=schemas.User)
async def read_users_me(
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> db_models.User:
    """Get current user."""
    return current_user


@router.get("/check-username", response_model=schemas.UsernameAvailability)
async def check_username(
    username: str = Query(..., min_length=1, max_length=30),
    db: AsyncSession = Depends(get_db),
) -> schemas.UsernameAvailability:
    """Check whether a username is still free."""
    return await UserService.check_username(db, username)
