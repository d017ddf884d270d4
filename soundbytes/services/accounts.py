"""Accounts — registration, credential checks, profiles and the follow graph.

This is the only module that reads ``users.hashed_password``. It hands out
signed tokens; request handlers see only the identity inside them.
"""
from __future__ import annotations

import logging

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from soundbytes import errors
from soundbytes.auth.passwords import hash_password, verify_password
from soundbytes.auth.tokens import generate_access_code
from soundbytes.db.models import User, UserFollow
from soundbytes.models.users import (
    PrivateProfile,
    ProfileSettings,
    ProfileSettingsUpdate,
    ProfileUpdate,
    PublicProfile,
    SignUpRequest,
)
from soundbytes.services import playlist

logger = logging.getLogger(__name__)

_TAKEN = "Username or email already taken."


def issue_token(user: User) -> str:
    return generate_access_code(user_id=user.id, username=user.username)


async def register(session: AsyncSession, request: SignUpRequest) -> User:
    """Create an account. Raises ``Conflict`` when username or email is taken."""
    taken = (await session.execute(
        select(User.id).where(
            or_(User.username == request.username, User.email == request.email)
        )
    )).first()
    if taken is not None:
        raise errors.Conflict(_TAKEN)

    user = User(
        username=request.username,
        email=request.email,
        hashed_password=hash_password(request.password),
    )
    try:
        async with session.begin_nested():
            session.add(user)
            await session.flush()
    except IntegrityError:
        raise errors.Conflict(_TAKEN)
    logger.info("Registered user %s (@%s)", user.id[:8], user.username)
    return user


async def authenticate(session: AsyncSession, username: str, password: str) -> User:
    """Return the user for valid credentials, else raise ``Unauthorized``."""
    user = (await session.execute(
        select(User).where(User.username == username)
    )).scalar_one_or_none()
    if user is None or not verify_password(user.hashed_password, password):
        logger.info("Failed sign-in for @%s", username)
        raise errors.Unauthorized("Invalid credentials.")
    return user


async def get_user(session: AsyncSession, user_id: str) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise errors.NotFound("User not found.")
    return user


async def list_users(session: AsyncSession) -> list[User]:
    rows = (await session.execute(select(User).order_by(User.username))).scalars().all()
    return list(rows)


async def _follow_counts(session: AsyncSession, user_id: str) -> tuple[int, int]:
    followers = (await session.execute(
        select(func.count()).select_from(UserFollow).where(UserFollow.followee_id == user_id)
    )).scalar_one()
    following = (await session.execute(
        select(func.count()).select_from(UserFollow).where(UserFollow.follower_id == user_id)
    )).scalar_one()
    return followers, following


async def public_profile(session: AsyncSession, user: User) -> PublicProfile:
    followers, following = await _follow_counts(session, user.id)
    return PublicProfile(
        id=user.id,
        username=user.username,
        display_name=user.display_name or user.username,
        avatar_url=user.avatar_url,
        bio=user.bio,
        genres=list(user.genres or []),
        followers_count=followers,
        following_count=following,
        settings=ProfileSettings(visibility=user.profile_visibility, allow_dms=user.allow_dms),
    )


async def private_profile(session: AsyncSession, user: User) -> PrivateProfile:
    public = await public_profile(session, user)
    return PrivateProfile(
        **public.model_dump(),
        email=user.email,
        jukebox_stats=await playlist.jukebox_stats(session, user.id),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def _apply_settings(user: User, update: ProfileSettingsUpdate | None) -> None:
    if update is None:
        return
    if update.visibility is not None:
        user.profile_visibility = update.visibility
    if update.allow_dms is not None:
        user.allow_dms = update.allow_dms


async def update_profile(session: AsyncSession, user: User, update: ProfileUpdate) -> User:
    """Apply the fields the caller actually sent."""
    for field in update.model_fields_set:
        value = getattr(update, field)
        if field == "settings":
            _apply_settings(user, value)
            continue
        if field == "genres" and value is None:
            value = []
        setattr(user, field, value)
    await session.flush()
    return user


async def follow(session: AsyncSession, follower_id: str, followee_id: str) -> None:
    """Follow a user. Idempotent."""
    if follower_id == followee_id:
        raise errors.ValidationError("Cannot follow yourself")
    await get_user(session, followee_id)
    try:
        async with session.begin_nested():
            session.add(UserFollow(follower_id=follower_id, followee_id=followee_id))
            await session.flush()
    except IntegrityError as exc:
        if followee_id not in await following_ids(session, follower_id):
            # Not a duplicate; a missing user
            raise errors.Unavailable("Could not record the follow") from exc


async def unfollow(session: AsyncSession, follower_id: str, followee_id: str) -> None:
    """Unfollow a user. No-op if not following."""
    await session.execute(
        delete(UserFollow).where(
            UserFollow.follower_id == follower_id,
            UserFollow.followee_id == followee_id,
        )
    )


async def following_ids(session: AsyncSession, user_id: str) -> set[str]:
    rows = (await session.execute(
        select(UserFollow.followee_id).where(UserFollow.follower_id == user_id)
    )).scalars().all()
    return set(rows)
