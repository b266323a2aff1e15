import logging

from fastapi import APIRouter, Depends, Request

from httpguard.content import multipart_only
from httpguard.errors import new_error, new_form_error
from httpguard.uploader import UploadConflictError, Uploader

from ..schema import UploadResponse

logger = logging.getLogger('httpguard.service.routers.uploads')

ALLOWED_MIMES = ("image/png", "image/jpeg", "image/gif", "application/pdf", "text/plain")
MIN_SIZE = "1B"
MAX_SIZE = "10MB"

router = APIRouter(
    tags=["uploads"],
)


@router.post("/uploads", dependencies=[Depends(multipart_only())])
async def upload(request: Request) -> UploadResponse:
    settings = request.app.state.upload_settings
    uploader = await Uploader.from_request(request, "file", settings.root, request.app.state.uploader_options)

    if uploader.is_nil():
        raise await new_form_error("file is required", request, 422)
    if not uploader.validate_size(MIN_SIZE, MAX_SIZE):
        raise await new_form_error(f"file size must be between {MIN_SIZE} and {MAX_SIZE}", request, 422)
    if not await uploader.validate_mime(*ALLOWED_MIMES):
        raise await new_form_error("file type is not allowed", request, 415)

    try:
        await uploader.save()
    except UploadConflictError:
        raise new_error("file already exists", 409)

    logger.info(f"Stored upload {uploader.file.filename} at {uploader.path()}")
    return UploadResponse(filename=uploader.name, path=uploader.path(), url=uploader.url())
