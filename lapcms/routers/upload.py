from fastapi import APIRouter, Depends, File, UploadFile

from lapcms.core.config import Settings
from lapcms.core.errors import CMSError, ValidationError
from lapcms.core.policy import authorize
from lapcms.core.rate_limit import rate_limit
from lapcms.deps import get_current_user, get_settings, get_storage
from lapcms.models.user import User
from lapcms.services.storage import ObjectStorage

router = APIRouter(dependencies=[Depends(rate_limit("general"))])


async def read_image(file: UploadFile, settings: Settings) -> bytes:
    """Validate an uploaded image and return its bytes."""
    if not file.content_type or not file.content_type.startswith("image/"):
        raise ValidationError("Only image files are allowed", code="INVALID_FILE_TYPE")

    # Read one byte past the limit to detect oversized files
    content = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise CMSError(
            f"File exceeds the {settings.MAX_UPLOAD_BYTES // (1024 * 1024)}MB limit",
            code="FILE_TOO_LARGE",
            status_code=413,
        )
    return content


@router.post("/upload-image")
async def upload_image(
    image: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    storage: ObjectStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """
    Upload an image to the object store.
    Returns its public URL.
    """
    authorize(current_user, "upload", "create")
    content = await read_image(image, settings)
    key = storage.upload_file(content, image.filename, image.content_type)
    return {
        "success": True,
        "data": {
            "url": storage.get_public_url(key),
            "fileName": image.filename,
            "size": len(content),
            "mimeType": image.content_type,
        },
    }


@router.post("/upload-image-editorjs")
async def upload_image_editorjs(
    image: UploadFile = File(...),
    current_user: User = Depends(get_current_user),
    storage: ObjectStorage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
):
    """Same as upload-image, answered in the shape Editor.js expects."""
    authorize(current_user, "upload", "create")
    content = await read_image(image, settings)
    key = storage.upload_file(content, image.filename, image.content_type)
    return {"success": 1, "file": {"url": storage.get_public_url(key)}}
