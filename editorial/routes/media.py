"""
Media Routes

Upload endpoints for a record's primary image and its gallery. They only
store files and return URLs; attaching them to a record happens through
the editor and is persisted on save.
"""

from fastapi import APIRouter, Depends, File, UploadFile, status

from editorial.constants import CollectionConfig
from editorial.dependencies import get_collection, get_upload_service
from editorial.schemas.record import GalleryUploadResponse, UploadResponse
from editorial.services.upload_service import UploadService

router = APIRouter(tags=["Media"])


@router.post("/media/{collection}/image", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_image(
    file: UploadFile = File(...),
    config: CollectionConfig = Depends(get_collection),
    uploads: UploadService = Depends(get_upload_service),
):
    """
    Upload the primary image of a record.

    Supported formats: JPEG, PNG, GIF, WebP
    """
    url = await uploads.upload_image(file, config.prefix)
    return UploadResponse(url=url)


@router.post("/media/{collection}/gallery", response_model=GalleryUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_gallery(
    files: list[UploadFile] = File(...),
    config: CollectionConfig = Depends(get_collection),
    uploads: UploadService = Depends(get_upload_service),
):
    """
    Upload a batch of gallery images.

    The batch succeeds or fails as a whole; URLs come back in upload order.
    """
    urls = await uploads.upload_gallery(files, config.prefix)
    return GalleryUploadResponse(urls=urls)
