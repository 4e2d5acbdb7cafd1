from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import FileResponse, PlainTextResponse
from starlette.background import BackgroundTask
from starlette.datastructures import UploadFile
from pathlib import Path
from typing import BinaryIO, Optional
import asyncio
import logging
import mimetypes
import shutil
import uuid

from clipcut.api.deps import get_cut_coordinator, get_item_repository, get_settings
from clipcut.core.config import Settings
from clipcut.db.repositories.item_repository import ItemRepository
from clipcut.domains.clipboard.entities import ItemKind
from clipcut.domains.clipboard.exceptions import BlobStorageError, ItemNotFoundError
from clipcut.domains.clipboard.schemas import ItemResponse, OkResponse, TextItemCreate
from clipcut.domains.clipboard.services import CutCoordinator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["files"])

UPLOAD_CHUNK_SIZE = 1024 * 1024


@router.post(
    "/upload",
    response_model=ItemResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED
)
async def upload(
    request: Request,
    repository: ItemRepository = Depends(get_item_repository),
    settings: Settings = Depends(get_settings)
):
    """Создание элемента: multipart с полем file или text, либо JSON {text}"""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            payload = TextItemCreate.model_validate(await request.json())
        except ValueError:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="text required")
        item = await repository.add_text(payload.text)
        return ItemResponse.from_entity(item)

    form = await request.form()

    text = form.get("text")
    if isinstance(text, str) and text:
        item = await repository.add_text(text)
        return ItemResponse.from_entity(item)

    upload_file = form.get("file")
    if not isinstance(upload_file, UploadFile):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="no file")

    display_name = Path(upload_file.filename or "").name or "upload"
    mime_type = (
        upload_file.content_type
        or mimetypes.guess_type(display_name)[0]
        or "application/octet-stream"
    )

    try:
        tmp_path = await _spool_upload(upload_file, settings.tmp_dir)
        try:
            item = await repository.add_file(display_name, tmp_path, mime_type)
        finally:
            tmp_path.unlink(missing_ok=True)
    except BlobStorageError as e:
        logger.error(f"Upload of {display_name} failed: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return ItemResponse.from_entity(item)


@router.get("/download/{item_id}")
async def download(
    item_id: str,
    delete: Optional[str] = Query(None),
    repository: ItemRepository = Depends(get_item_repository),
    coordinator: CutCoordinator = Depends(get_cut_coordinator)
):
    """Выдача содержимого элемента; с delete=1 элемент удаляется после отдачи"""
    item = await repository.get(item_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")

    background = None
    if delete == "1":
        background = BackgroundTask(_delete_after_download, coordinator, item_id)

    if item.kind == ItemKind.TEXT:
        return PlainTextResponse(item.text or "", background=background)

    path = repository.blob_path(item)
    if path is None or not path.exists():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="file missing")

    return FileResponse(
        path,
        media_type=item.mime_type or "application/octet-stream",
        filename=item.name,
        background=background
    )


@router.delete("/delete/{item_id}", response_model=OkResponse)
async def delete_item(item_id: str, coordinator: CutCoordinator = Depends(get_cut_coordinator)):
    """Удаление элемента из любого состояния"""
    try:
        await coordinator.cancel(item_id)
    except ItemNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")

    return OkResponse(ok=True)


async def _spool_upload(upload_file: UploadFile, tmp_dir: Path) -> Path:
    """Сохранение загружаемого файла во временный каталог"""
    tmp_path = tmp_dir / uuid.uuid4().hex
    try:
        await asyncio.to_thread(_copy_to_file, upload_file.file, tmp_path)
    except OSError as e:
        tmp_path.unlink(missing_ok=True)
        raise BlobStorageError(f"Could not receive upload: {e}") from e
    finally:
        await upload_file.close()

    return tmp_path


def _copy_to_file(source: BinaryIO, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "wb") as fh:
        shutil.copyfileobj(source, fh, UPLOAD_CHUNK_SIZE)


async def _delete_after_download(coordinator: CutCoordinator, item_id: str) -> None:
    try:
        await coordinator.cancel(item_id)
    except ItemNotFoundError:
        logger.debug(f"Item {item_id} already gone after download")
