from fastapi import APIRouter, Depends

from clipcut.api.deps import get_device_registry, get_item_repository
from clipcut.db.repositories.item_repository import ItemRepository
from clipcut.domains.devices.services import DeviceRegistry

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(
    repository: ItemRepository = Depends(get_item_repository),
    registry: DeviceRegistry = Depends(get_device_registry)
):
    """Проверка работоспособности"""
    open_cuts = await repository.list_cut()
    return {
        "status": "ok",
        "devices_known": len(registry.known_ids()),
        "devices_online": len(registry.online()),
        "open_cuts": len(open_cuts),
    }
