# devnet/api/endpoints/cv.py
import logging
from typing import List

from bson import ObjectId
from fastapi import APIRouter, Depends, Response
from fastapi.concurrency import run_in_threadpool
from odmantic import AIOEngine

from devnet.core.security import get_current_user_id
from devnet.db.session import get_engine
from devnet.domains.cv import services as cv_services
from devnet.domains.cv.renderer import CVRenderer, pdf_filename
from devnet.domains.cv.schemas import (
    CVImageBody,
    CVImageResponse,
    CVMessage,
    CVProfileOut,
    CVProfileWrite,
    CVSyncBody,
    cvprofile_to_dto,
)
from devnet.domains.uploads.storage import UploadStorage, get_storage
from devnet.helpers.serialize import parse_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cv-profile", tags=["cv"])


def _cv_id(value: str) -> ObjectId:
    return parse_object_id(value, "CV profile ID")


# -------------------------
# Reads
# -------------------------
@router.get("/", response_model=CVProfileOut)
async def default_profile(
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return cvprofile_to_dto(await cv_services.get_default(engine, user_id))


@router.get("/all", response_model=List[CVProfileOut])
async def all_profiles(
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return [cvprofile_to_dto(p) for p in await cv_services.list_profiles(engine, user_id)]


@router.get("/public/{cv_id}", response_model=CVProfileOut)
async def public_profile(cv_id: str, engine: AIOEngine = Depends(get_engine)):
    profile, owner = await cv_services.get_public(engine, _cv_id(cv_id))
    return cvprofile_to_dto(profile, owner)


@router.get("/user/{user_id}", response_model=CVProfileOut)
async def public_profile_of_user(user_id: str, engine: AIOEngine = Depends(get_engine)):
    profile, owner = await cv_services.get_public_for_user(engine, parse_object_id(user_id, "user ID"))
    return cvprofile_to_dto(profile, owner)


@router.get("/{cv_id}/pdf")
async def download_pdf(
    cv_id: str,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
    storage: UploadStorage = Depends(get_storage),
):
    profile, display_name, image = await cv_services.pdf_inputs(engine, _cv_id(cv_id), user_id, storage)
    pdf = await run_in_threadpool(CVRenderer(profile, display_name, image).render)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{pdf_filename(display_name)}"'},
    )


@router.get("/{cv_id}", response_model=CVProfileOut)
async def get_profile(
    cv_id: str,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return cvprofile_to_dto(await cv_services.get_owned(engine, _cv_id(cv_id), user_id))


# -------------------------
# Writes
# -------------------------
@router.post("/", response_model=CVProfileOut)
async def create_profile(
    payload: CVProfileWrite,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return cvprofile_to_dto(await cv_services.create_profile(engine, user_id, payload))


@router.post("/sync", response_model=CVProfileOut)
async def sync_profile(
    body: CVSyncBody,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return cvprofile_to_dto(await cv_services.sync_profile(engine, user_id, body.sections))


@router.post("/duplicate/{cv_id}", response_model=CVProfileOut)
async def duplicate_profile(
    cv_id: str,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return cvprofile_to_dto(await cv_services.duplicate_profile(engine, _cv_id(cv_id), user_id))


@router.put("/public/{cv_id}", response_model=CVProfileOut)
async def make_public(
    cv_id: str,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return cvprofile_to_dto(await cv_services.set_public(engine, _cv_id(cv_id), user_id, True))


@router.put("/private/{cv_id}", response_model=CVProfileOut)
async def make_private(
    cv_id: str,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return cvprofile_to_dto(await cv_services.set_public(engine, _cv_id(cv_id), user_id, False))


@router.put("/default/{cv_id}", response_model=CVProfileOut)
async def make_default(
    cv_id: str,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return cvprofile_to_dto(await cv_services.set_default(engine, _cv_id(cv_id), user_id))


@router.put("/{cv_id}/image", response_model=CVImageResponse)
async def update_image(
    cv_id: str,
    body: CVImageBody,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    profile = await cv_services.set_image(engine, _cv_id(cv_id), user_id, body.image_data)
    return CVImageResponse(message="Profile image updated successfully", profile_image=profile.profile_image)


@router.put("/{cv_id}", response_model=CVProfileOut)
async def update_profile(
    cv_id: str,
    payload: CVProfileWrite,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return cvprofile_to_dto(await cv_services.update_profile(engine, _cv_id(cv_id), user_id, payload))


@router.delete("/{cv_id}", response_model=CVMessage)
async def delete_profile(
    cv_id: str,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    await cv_services.delete_profile(engine, _cv_id(cv_id), user_id)
    return CVMessage(message="CV profile deleted")
