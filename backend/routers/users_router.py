"""User profile and follow endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from repositories.database import get_db
from services import UserService

router = APIRouter(prefix="/users", tags=["users"])


# /me routes are declared before /{username} so "me" is never taken as a name


@router.put("/me/location", response_model=schemas.User)
async def update_location(
    location: schemas.LocationUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> db_models.User:
    """Set the current user's location used for feed ranking."""
    return await UserService.update_location(db, current_user, location)


@router.put("/me/bio", response_model=schemas.User)
async def update_bio(
    bio: schemas.BioUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> db_models.User:
    return await UserService.update_bio(db, current_user, bio.bio)


@router.get("/{username}", response_model=schemas.UserProfile)
async def get_profile(
    username: str,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User | None = Depends(auth.get_current_user_optional),
) -> schemas.UserProfile:
    """Get a user's public profile."""
    viewer_id = current_user.id if current_user else None
    return await UserService.get_profile(db, username, viewer_id)


@router.get("/{username}/follow-status", response_model=schemas.FollowStatus)
async def get_follow_status(
    username: str,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> schemas.FollowStatus:
    return await UserService.follow_status(db, username, current_user.id)


@router.post("/{username}/follow", response_model=schemas.FollowResponse)
async def follow_user(
    username: str,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> schemas.FollowResponse:
    """Follow a user."""
    return await UserService.follow(db, username, current_user.id)


@router.post("/{username}/unfollow", response_model=schemas.FollowResponse)
async def unfollow_user(
    username: str,
    db: AsyncSession = Depends(get_db),
    current_user: db_models.User = Depends(auth.get_current_active_user),
) -> schemas.FollowResponse:
    """Unfollow a user."""
    return await UserService.unfollow(db, username, current_user.id)
