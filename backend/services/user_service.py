"""
User Service

Handles registration, login, public profiles and the follow graph.
"""

import random
from datetime import date, timedelta
from typing import Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

import authentication.auth as auth
import models.schemas as schemas
import repositories.db_models as db_models
from models.config import settings
from models.exceptions import (
    InvalidCredentialsException,
    UserAlreadyExistsException,
    UserNotFoundException,
    ValidationException,
)
from repositories.user_repository import UserRepository


def age_on(dob: date, today: date) -> int:
    """Age in completed years on ``today``."""
    years = today.year - dob.year
    if (today.month, today.day) < (dob.month, dob.day):
        years -= 1
    return years


class UserService:
    """Service for accounts, profiles and follows."""

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    @staticmethod
    async def generate_username(user_repo: UserRepository, name: str) -> str:
        """
        Derive a free username from a display name.

        The name is lowercased with whitespace removed; while that is taken a
        random number from 0 to 999 is appended.
        """
        base = "".join(name.lower().split()) or "user"
        username = base
        while await user_repo.username_exists(username):
            username = f"{base}{random.randint(0, 999)}"
        return username

    @staticmethod
    async def register(
        db: AsyncSession, data: schemas.UserCreate, today: Optional[date] = None
    ) -> db_models.User:
        """
        Create an account.

        Args:
            db: Database session
            data: Registration fields
            today: Reference date for the age check

        Returns:
            The created user

        Raises:
            ValidationException: If the user is under the minimum age
            UserAlreadyExistsException: If the email or username is taken
        """
        today = today or date.today()
        if age_on(data.dob, today) < settings.MIN_USER_AGE:
            raise ValidationException(
                f"You must be at least {settings.MIN_USER_AGE} years old"
            )

        user_repo = UserRepository(db)
        if await user_repo.email_exists(data.email):
            raise UserAlreadyExistsException("Email already exists")

        if data.username:
            if await user_repo.username_exists(data.username):
                raise UserAlreadyExistsException("Username already taken")
            username = data.username
        else:
            username = await UserService.generate_username(user_repo, data.name)

        user = db_models.User(
            name=data.name.strip(),
            username=username,
            email=data.email,
            hashed_password=auth.get_password_hash(data.password),
            dob=data.dob,
            badges=[],
        )
        await user_repo.create(user)
        logger.info(f"User {user.id} registered as '{username}'")
        return user

    @staticmethod
    async def login(db: AsyncSession, credential: str, password: str) -> schemas.Token:
        """
        Authenticate by email or username and issue an access token.

        Raises:
            InvalidCredentialsException: If the credential or password is wrong
        """
        user = await UserRepository(db).get_by_credential(credential.strip())
        if not user or not auth.verify_password(password, user.hashed_password):
            raise InvalidCredentialsException("Invalid credentials")

        access_token = auth.create_access_token(
            data={"sub": str(user.id)},
            expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        logger.info(f"User {user.id} logged in")
        # nosec B106: "bearer" is OAuth2 token type, not a password
        return schemas.Token(access_token=access_token, token_type="bearer")  # nosec B106

    @staticmethod
    async def check_username(
        db: AsyncSession, username: str
    ) -> schemas.UsernameAvailability:
        username = username.strip()
        if not username:
            raise ValidationException("Username is required")
        taken = await UserRepository(db).username_exists(username)
        return schemas.UsernameAvailability(username=username, available=not taken)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    @staticmethod
    async def _get_by_username_or_404(
        user_repo: UserRepository, username: str
    ) -> db_models.User:
        user = await user_repo.get_by_username(username)
        if not user:
            raise UserNotFoundException("User not found")
        return user

    @staticmethod
    async def get_profile(
        db: AsyncSession, username: str, viewer_id: Optional[int] = None
    ) -> schemas.UserProfile:
        """
        Get a user's public profile as seen by ``viewer_id``.

        Raises:
            UserNotFoundException: If no user has that username
        """
        user_repo = UserRepository(db)
        user = await UserService._get_by_username_or_404(user_repo, username)

        is_following = viewer_id is not None and await user_repo.is_following(
            viewer_id, user.id
        )
        profile = schemas.UserProfile.model_validate(user)
        profile.followers_count = await user_repo.count_followers(user.id)
        profile.following_count = await user_repo.count_following(user.id)
        profile.is_following = is_following
        profile.is_own_profile = viewer_id == user.id
        return profile

    @staticmethod
    async def _follow_status(
        user_repo: UserRepository, viewer_id: int, target_id: int
    ) -> schemas.FollowStatus:
        return schemas.FollowStatus(
            is_following=await user_repo.is_following(viewer_id, target_id),
            followers_count=await user_repo.count_followers(target_id),
            following_count=await user_repo.count_following(target_id),
        )

    @staticmethod
    async def follow_status(
        db: AsyncSession, username: str, viewer_id: int
    ) -> schemas.FollowStatus:
        user_repo = UserRepository(db)
        target = await UserService._get_by_username_or_404(user_repo, username)
        return await UserService._follow_status(user_repo, viewer_id, target.id)

    @staticmethod
    async def follow(
        db: AsyncSession, username: str, viewer_id: int
    ) -> schemas.FollowResponse:
        """
        Follow a user. Following someone already followed is a no-op.

        Raises:
            UserNotFoundException: If no user has that username
            ValidationException: If a user tries to follow themselves
        """
        user_repo = UserRepository(db)
        target = await UserService._get_by_username_or_404(user_repo, username)
        if target.id == viewer_id:
            raise ValidationException("You cannot follow yourself")

        if await user_repo.follow(viewer_id, target.id):
            logger.info(f"User {viewer_id} followed user {target.id}")
        status = await UserService._follow_status(user_repo, viewer_id, target.id)
        return schemas.FollowResponse(
            message=f"You are now following {target.username}",
            **status.model_dump(),
        )

    @staticmethod
    async def unfollow(
        db: AsyncSession, username: str, viewer_id: int
    ) -> schemas.FollowResponse:
        """
        Stop following a user.

        Raises:
            UserNotFoundException: If no user has that username
            ValidationException: If a user tries to unfollow themselves
        """
        user_repo = UserRepository(db)
        target = await UserService._get_by_username_or_404(user_repo, username)
        if target.id == viewer_id:
            raise ValidationException("You cannot unfollow yourself")

        if await user_repo.unfollow(viewer_id, target.id):
            logger.info(f"User {viewer_id} unfollowed user {target.id}")
        status = await UserService._follow_status(user_repo, viewer_id, target.id)
        return schemas.FollowResponse(
            message=f"You unfollowed {target.username}",
            **status.model_dump(),
        )

    # ------------------------------------------------------------------
    # Own profile updates
    # ------------------------------------------------------------------

    @staticmethod
    async def update_location(
        db: AsyncSession, user: db_models.User, data: schemas.LocationUpdate
    ) -> db_models.User:
        """Set the free-text location and, when given, coordinates."""
        user.location = data.location.strip()
        user.latitude = data.lat
        user.longitude = data.lng
        await UserRepository(db).save(user)
        return user

    @staticmethod
    async def update_bio(
        db: AsyncSession, user: db_models.User, bio: str
    ) -> db_models.User:
        user.bio = bio.strip()
        await UserRepository(db).save(user)
        return user
