from typing import Any
from fastapi import APIRouter, Depends, UploadFile, File
from fastapi.concurrency import run_in_threadpool

from app.core import deps
from app.modules.auth import models as auth_models
from app.modules.media import schemas, service
from app.modules.media.storage import B2Storage, get_storage

router = APIRouter()

@router.post("", response_model=schemas.UploadResponse)
async def upload_file(
    file: UploadFile = File(...),
    current_user: auth_models.User = Depends(deps.get_current_admin),
    storage: B2Storage = Depends(get_storage),
) -> Any:
    """
    Upload an image to object storage (Admin only).
    """
    return await service.upload_image(storage, file)

@router.post("/delete", response_model=schemas.DeleteResponse)
async def delete_file(
    payload: schemas.DeleteRequest,
    current_user: auth_models.User = Depends(deps.get_current_admin),
    storage: B2Storage = Depends(get_storage),
) -> Any:
    deleted = await run_in_threadpool(service.delete_quietly, storage, payload.url)
    if deleted:
        return {"message": "File deleted successfully", "deleted": True}
    return {"message": "File deletion attempted", "deleted": False}
