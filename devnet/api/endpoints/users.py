# devnet/api/endpoints/users.py
"""
User routes: registration, login, profiles and the follow graph.
Static paths are declared before `/{target_id}` so they are matched first.
"""

import logging
from typing import List, Optional

from bson import ObjectId
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from odmantic import AIOEngine

from devnet.core.security import get_current_user_id
from devnet.db.session import get_engine
from devnet.domains.uploads.storage import UploadStorage, get_storage
from devnet.domains.users import services as user_services
from devnet.domains.users.schemas import (
    ProfileImageResponse,
    ProfileUpdate,
    RegisterResponse,
    TokenResponse,
    UserLogin,
    UserPublic,
    UserRegister,
    UserSummary,
    usermodel_to_public,
    usermodel_to_summary,
)
from devnet.helpers.serialize import oid_to_str, parse_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/user", tags=["users"])

PROFILE_IMAGE_DIR = "profiles"


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: UserRegister, engine: AIOEngine = Depends(get_engine)):
    user = await user_services.register_user(engine, payload)
    return RegisterResponse(
        message="User registered successfully",
        user_id=oid_to_str(user.id),
        username=user.username,
    )


@router.post("/login", response_model=TokenResponse)
async def login(payload: UserLogin, engine: AIOEngine = Depends(get_engine)):
    token = await user_services.authenticate(engine, payload.email, payload.password)
    return TokenResponse(token=token)


@router.get("/all", response_model=List[UserPublic])
async def all_users(engine: AIOEngine = Depends(get_engine)):
    return [usermodel_to_public(u) for u in await user_services.list_users(engine)]


@router.get("/search", response_model=List[UserPublic])
async def search_users(q: str = Query(""), engine: AIOEngine = Depends(get_engine)):
    if not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    users = await user_services.search_users(engine, q)
    return [usermodel_to_public(u, include_email=False) for u in users]


@router.get("/profile", response_model=UserPublic)
async def my_profile(
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return usermodel_to_public(await user_services.get_user(engine, user_id))


@router.put("/profile", response_model=UserPublic)
async def update_my_profile(
    payload: ProfileUpdate,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    user = await user_services.update_profile(engine, user_id, payload)
    return usermodel_to_public(user)


@router.post("/profile/image", response_model=ProfileImageResponse)
async def upload_profile_image(
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
    storage: UploadStorage = Depends(get_storage),
):
    if profile_image is None:
        raise HTTPException(status_code=400, detail="No image file uploaded")
    image_url = await storage.save_image(profile_image, prefix="profileImage", subdir=PROFILE_IMAGE_DIR)
    user = await user_services.set_profile_image(engine, user_id, image_url)
    return ProfileImageResponse(
        message="Profile image uploaded successfully",
        profile_image=image_url,
        user=usermodel_to_public(user),
    )


@router.get("/profile/{target_id}", response_model=UserPublic)
async def public_profile(target_id: str, engine: AIOEngine = Depends(get_engine)):
    user = await user_services.get_user(engine, parse_object_id(target_id, "user ID"))
    return usermodel_to_public(user, include_email=False)


@router.post("/follow/{target_id}")
async def follow(
    target_id: str,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    await user_services.follow(engine, user_id, parse_object_id(target_id, "user ID"))
    return {"message": "User followed successfully"}


@router.post("/unfollow/{target_id}")
async def unfollow(
    target_id: str,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    await user_services.unfollow(engine, user_id, parse_object_id(target_id, "user ID"))
    return {"message": "User unfollowed successfully"}


@router.get("/following", response_model=List[UserSummary])
async def my_following(
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return [usermodel_to_summary(u) for u in await user_services.list_following(engine, user_id)]


@router.get("/following/{target_id}", response_model=List[UserSummary], dependencies=[Depends(get_current_user_id)])
async def following_of(
    target_id: str,
    engine: AIOEngine = Depends(get_engine),
):
    users = await user_services.list_following(engine, parse_object_id(target_id, "user ID"))
    return [usermodel_to_summary(u) for u in users]


@router.get("/followers/{target_id}", response_model=List[UserSummary], dependencies=[Depends(get_current_user_id)])
async def followers_of(
    target_id: str,
    engine: AIOEngine = Depends(get_engine),
):
    users = await user_services.list_followers(engine, parse_object_id(target_id, "user ID"))
    return [usermodel_to_summary(u) for u in users]


@router.get("/{target_id}", response_model=UserPublic, dependencies=[Depends(get_current_user_id)])
async def get_user(
    target_id: str,
    engine: AIOEngine = Depends(get_engine),
):
    return usermodel_to_public(await user_services.get_user(engine, parse_object_id(target_id, "user ID")))
