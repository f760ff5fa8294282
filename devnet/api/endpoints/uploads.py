# devnet/api/endpoints/uploads.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from devnet.core.config import settings
from devnet.core.security import get_current_user_id
from devnet.domains.uploads.storage import UploadStorage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["uploads"])


@router.post("/uploads", dependencies=[Depends(get_current_user_id)])
async def upload_image(
    image: Optional[UploadFile] = File(None),
    storage: UploadStorage = Depends(get_storage),
):
    if image is None or not image.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")
    image_url = await storage.save_image(image, prefix="image")
    return {"imageUrl": image_url, "message": "File uploaded successfully"}


@router.post("/uploads/multiple", dependencies=[Depends(get_current_user_id)])
async def upload_images(
    images: Optional[List[UploadFile]] = File(None),
    storage: UploadStorage = Depends(get_storage),
):
    files = [image for image in images or [] if image.filename]
    if not files:
        raise HTTPException(status_code=400, detail="No files uploaded")
    if len(files) > settings.MAX_UPLOAD_FILES:
        raise HTTPException(
            status_code=400, detail=f"Too many files. Maximum is {settings.MAX_UPLOAD_FILES} per upload."
        )

    urls = await storage.save_images(files, prefix="images")
    return {"imageUrls": urls, "message": "Files uploaded successfully"}


@router.get("/check-file/{filename}")
async def check_file(filename: str, storage: UploadStorage = Depends(get_storage)):
    exists = storage.exists(filename)
    return {"exists": exists, "path": storage.url_for(filename)}
