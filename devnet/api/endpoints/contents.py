# devnet/api/endpoints/contents.py
import json
import logging
from typing import List, Optional, Type, TypeVar

from bson import ObjectId
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from odmantic import AIOEngine
from pydantic import BaseModel

from devnet.core.security import get_current_user_id, get_optional_user_id
from devnet.db.session import get_engine
from devnet.domains.contents import services as content_services
from devnet.domains.contents.models import ContentType
from devnet.domains.contents.schemas import (
    ContentCreate,
    ContentMessage,
    ContentOut,
    ContentPage,
    ContentUpdate,
    contentmodel_to_dto,
    contents_to_page,
)
from devnet.domains.uploads.storage import UploadStorage, get_storage
from devnet.helpers.pagination import PageParams
from devnet.helpers.serialize import parse_object_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contents", tags=["contents"])

CONTENT_IMAGE_DIR = "contents"

M = TypeVar("M", bound=BaseModel)


def parse_form_payload(raw: str, schema: Type[M]) -> M:
    """
    Content writes are multipart so an image can ride along; the metadata comes
    as a JSON string in the `payload` form field.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        raise HTTPException(status_code=400, detail="Invalid JSON format in 'payload' form field.")
    # ValidationError is rendered as a 400 by the app-level handler
    return schema.model_validate(data)


async def _store_image(storage: UploadStorage, image: Optional[UploadFile]) -> Optional[str]:
    if image is None or not image.filename:
        return None
    return await storage.save_image(image, prefix="image", subdir=CONTENT_IMAGE_DIR)


async def _page(engine: AIOEngine, criteria: dict, viewer_id: Optional[ObjectId], paging: PageParams) -> ContentPage:
    docs, total = await content_services.list_contents(engine, criteria, viewer_id, paging.skip, paging.limit)
    return contents_to_page(docs, paging.meta(total))


# -------------------------
# Listings
# -------------------------
@router.get("/", response_model=ContentPage)
async def list_feed(
    paging: PageParams = Depends(),
    viewer_id: Optional[ObjectId] = Depends(get_optional_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    return await _page(engine, {}, viewer_id, paging)


@router.get("/user/{user_id}", response_model=ContentPage)
async def list_by_user(
    user_id: str,
    paging: PageParams = Depends(),
    viewer_id: Optional[ObjectId] = Depends(get_optional_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    author_id = parse_object_id(user_id, "user ID")
    return await _page(engine, {"user_id": author_id}, viewer_id, paging)


@router.get("/type/{content_type}", response_model=ContentPage)
async def list_by_type(
    content_type: str,
    paging: PageParams = Depends(),
    viewer_id: Optional[ObjectId] = Depends(get_optional_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    try:
        kind = ContentType(content_type)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid content type: {content_type}")
    return await _page(engine, {"content_type": kind.value}, viewer_id, paging)


# -------------------------
# Create
# -------------------------
@router.post("/", response_model=ContentMessage, status_code=status.HTTP_201_CREATED)
async def create_content(
    payload_str: str = Form(..., alias="payload", description="A JSON string of the ContentCreate schema."),
    image: Optional[UploadFile] = File(None),
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
    storage: UploadStorage = Depends(get_storage),
):
    payload = parse_form_payload(payload_str, ContentCreate)
    image_url = await _store_image(storage, image)
    content = await content_services.create_content(engine, user_id, payload, image_url)
    return ContentMessage(message="Content created successfully", content=contentmodel_to_dto(content))


@router.post("/bulk", response_model=List[ContentOut], status_code=status.HTTP_201_CREATED)
async def create_bulk(
    payloads: List[ContentCreate],
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    if not payloads:
        raise HTTPException(status_code=400, detail="At least one content item is required")
    contents = await content_services.create_many(engine, user_id, payloads)
    return [contentmodel_to_dto(c) for c in contents]


# -------------------------
# Single item
# -------------------------
@router.get("/{content_id}", response_model=ContentOut)
async def get_content(
    content_id: str,
    viewer_id: Optional[ObjectId] = Depends(get_optional_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    content = await content_services.get_visible(engine, parse_object_id(content_id, "content ID"), viewer_id)
    author_name, author_avatar = await content_services.author_of(engine, content)
    return contentmodel_to_dto(content, author_name, author_avatar)


@router.patch("/{content_id}", response_model=ContentMessage)
async def update_content(
    content_id: str,
    payload_str: str = Form("{}", alias="payload"),
    image: Optional[UploadFile] = File(None),
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
    storage: UploadStorage = Depends(get_storage),
):
    cid = parse_object_id(content_id, "content ID")
    changes = parse_form_payload(payload_str, ContentUpdate)
    # ownership is checked before anything is written to disk
    existing = await content_services.get_content(engine, cid)
    content_services.check_owner(existing, user_id, "update")
    image_url = await _store_image(storage, image)
    content = await content_services.update_content(engine, cid, user_id, changes, image_url)
    return ContentMessage(message="Content updated successfully", content=contentmodel_to_dto(content))


@router.delete("/{content_id}")
async def delete_content(
    content_id: str,
    user_id: ObjectId = Depends(get_current_user_id),
    engine: AIOEngine = Depends(get_engine),
):
    await content_services.delete_content(engine, parse_object_id(content_id, "content ID"), user_id)
    return {"message": "Content deleted successfully"}
