from fastapi import APIRouter, Body, Depends, HTTPException, status
from typing import List, Optional

from clipcut.api.deps import get_cut_coordinator, get_item_repository
from clipcut.db.repositories.item_repository import ItemRepository
from clipcut.domains.clipboard.exceptions import (
    ClipboardValidationError, InvalidStateError, ItemNotFoundError, TokenMismatchError
)
from clipcut.domains.clipboard.schemas import (
    CutCreate, ItemResponse, PasteAckRequest, PasteAckResponse
)
from clipcut.domains.clipboard.services import CutCoordinator

router = APIRouter(prefix="/items", tags=["items"])


@router.get("", response_model=List[ItemResponse], response_model_exclude_none=True)
async def list_items(repository: ItemRepository = Depends(get_item_repository)):
    """Список элементов, новые первыми"""
    items = await repository.list_all()
    return [ItemResponse.from_entity(item) for item in items]


@router.get("/{item_id}", response_model=ItemResponse, response_model_exclude_none=True)
async def get_item(item_id: str, repository: ItemRepository = Depends(get_item_repository)):
    """Получение элемента по id"""
    item = await repository.get(item_id)

    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="item not found"
        )

    return ItemResponse.from_entity(item)


@router.post("/{item_id}/cut", response_model=ItemResponse, response_model_exclude_none=True)
async def cut_item(
    item_id: str,
    cut_data: Optional[CutCreate] = Body(None),
    coordinator: CutCoordinator = Depends(get_cut_coordinator)
):
    """Вырезание элемента: все известные устройства, кроме владельца, должны подтвердить вставку"""
    cut_data = cut_data or CutCreate()

    try:
        item = await coordinator.create_cut(item_id, cut_data.owner_id, cut_data.ttl_seconds)
    except ClipboardValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ItemNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="item not found")
    except InvalidStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return ItemResponse.from_entity(item)


@router.post("/{item_id}/paste-ack", response_model=PasteAckResponse, response_model_exclude_none=True)
async def paste_ack(
    item_id: str,
    ack_data: Optional[PasteAckRequest] = Body(None),
    coordinator: CutCoordinator = Depends(get_cut_coordinator)
):
    """Подтверждение вставки вырезанного элемента устройством"""
    ack_data = ack_data or PasteAckRequest()
    if not ack_data.device_id or not ack_data.token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="deviceId and token required"
        )

    try:
        result = await coordinator.acknowledge(item_id, ack_data.device_id, ack_data.token)
    except (ItemNotFoundError, InvalidStateError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="cut not found for item")
    except TokenMismatchError:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="invalid token")

    if result.deleted:
        return PasteAckResponse(ok=True, deleted=True)
    return PasteAckResponse(ok=True, pending=result.pending)
