# devnet/domains/users/services.py
"""
User store operations: registration, login, profile updates and the follow graph.
"""

import base64
import logging
import re
from typing import List, Optional

from bson import ObjectId
from odmantic import AIOEngine, query

from devnet.core.config import settings
from devnet.core.errors import BadRequestError, ConflictError, NotFoundError
from devnet.core.security import create_access_token, hash_password, verify_password
from devnet.domains.users.models import UserModel, utcnow
from devnet.domains.users.schemas import (
    ProfileUpdate,
    UserRegister,
    education_to_entries,
    experience_to_entries,
)

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:image"


def contains_pattern(term: str) -> "re.Pattern[str]":
    """Case-insensitive substring pattern; the term is matched literally."""
    return re.compile(re.escape(term.strip()), re.IGNORECASE)


async def get_user(engine: AIOEngine, user_id: ObjectId) -> UserModel:
    user = await engine.find_one(UserModel, UserModel.id == user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def find_user(engine: AIOEngine, user_id: ObjectId) -> Optional[UserModel]:
    return await engine.find_one(UserModel, UserModel.id == user_id)


async def register_user(engine: AIOEngine, payload: UserRegister) -> UserModel:
    email = payload.email.lower()
    if await engine.find_one(UserModel, UserModel.email == email):
        raise ConflictError("Email already exists")
    if await engine.find_one(UserModel, UserModel.username == payload.username):
        raise ConflictError("Username already taken")

    user = UserModel(
        username=payload.username,
        full_name=payload.full_name or None,
        email=email,
        password_hash=hash_password(payload.password),
        bio=payload.bio,
        profile_image=payload.profile_image,
        skills=payload.skills,
        area_of_expertise=payload.area_of_expertise,
        education=education_to_entries(payload.education),
        experience=experience_to_entries(payload.experience),
        favorite_languages=payload.favorite_languages,
        github=payload.github or "",
        linkedin=payload.linkedin or "",
        portfolio=payload.portfolio or "",
    )
    await engine.save(user)
    logger.info(f"User registered successfully: id={user.id}, username={user.username}")
    return user


async def authenticate(engine: AIOEngine, email: str, password: str) -> str:
    """Returns a fresh access token for valid credentials."""
    user = await engine.find_one(UserModel, UserModel.email == email.lower())
    if not user or not verify_password(password, user.password_hash):
        logger.info(f"Failed login attempt for email={email}")
        raise BadRequestError("Invalid credentials")
    return create_access_token(subject=user.id)


async def list_users(engine: AIOEngine) -> List[UserModel]:
    return await engine.find(UserModel, sort=UserModel.created_at.desc())


async def search_users(engine: AIOEngine, term: str) -> List[UserModel]:
    pattern = contains_pattern(term)
    return await engine.find(
        UserModel,
        query.or_(
            query.match(UserModel.username, pattern),
            query.match(UserModel.full_name, pattern),
            query.match(UserModel.area_of_expertise, pattern),
        ),
    )


def check_data_url_size(image: Optional[str]) -> None:
    if not image or not image.startswith(DATA_URL_PREFIX):
        return
    # base64 inflates by 4/3
    approximate_size = len(image) * 3 / 4
    if approximate_size > settings.MAX_IMAGE_BYTES:
        size_mb = approximate_size / 1024 / 1024
        raise BadRequestError(
            f"Profile image is too large ({size_mb:.2f}MB). Maximum size allowed is "
            f"{settings.MAX_IMAGE_BYTES // (1024 * 1024)}MB."
        )


def decode_data_url(image: str) -> Optional[bytes]:
    """Returns the raw bytes of a `data:image/...;base64,` URL, or None."""
    if not image.startswith(DATA_URL_PREFIX) or "," not in image:
        return None
    try:
        return base64.b64decode(image.split(",", 1)[1])
    except ValueError:
        return None


async def update_profile(engine: AIOEngine, user_id: ObjectId, payload: ProfileUpdate) -> UserModel:
    check_data_url_size(payload.profile_image)
    user = await get_user(engine, user_id)

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    changes.pop("education", None)
    changes.pop("experience", None)
    if payload.education is not None:
        changes["education"] = education_to_entries(payload.education)
    if payload.experience is not None:
        changes["experience"] = experience_to_entries(payload.experience)
    changes["updated_at"] = utcnow()

    user.model_update(changes)
    await engine.save(user)
    logger.info(f"Profile updated successfully for user {user_id}")
    return user


async def set_profile_image(engine: AIOEngine, user_id: ObjectId, image_url: str) -> UserModel:
    user = await get_user(engine, user_id)
    user.profile_image = image_url
    user.updated_at = utcnow()
    await engine.save(user)
    return user


async def follow(engine: AIOEngine, user_id: ObjectId, target_id: ObjectId) -> UserModel:
    if user_id == target_id:
        raise BadRequestError("You cannot follow yourself")
    await get_user(engine, target_id)
    user = await get_user(engine, user_id)
    if target_id not in user.connections:
        user.connections = [*user.connections, target_id]
        user.updated_at = utcnow()
        await engine.save(user)
        logger.info(f"User {user_id} now follows {target_id}")
    return user


async def unfollow(engine: AIOEngine, user_id: ObjectId, target_id: ObjectId) -> UserModel:
    user = await get_user(engine, user_id)
    if target_id in user.connections:
        user.connections = [c for c in user.connections if c != target_id]
        user.updated_at = utcnow()
        await engine.save(user)
        logger.info(f"User {user_id} unfollowed {target_id}")
    return user


async def list_following(engine: AIOEngine, user_id: ObjectId) -> List[UserModel]:
    user = await get_user(engine, user_id)
    if not user.connections:
        return []
    return await engine.find(UserModel, query.in_(UserModel.id, user.connections))


async def list_followers(engine: AIOEngine, user_id: ObjectId) -> List[UserModel]:
    return await engine.find(UserModel, {"connections": user_id})


async def ids_connected_to(engine: AIOEngine, user_id: ObjectId) -> List[ObjectId]:
    """Ids of the users whose `connections` include `user_id`."""
    collection = engine.get_collection(UserModel)
    cursor = collection.find({"connections": user_id}, {"_id": 1})
    return [doc["_id"] async for doc in cursor]
