from fastapi import APIRouter, Depends, Request
from typing import Dict, List

from clipcut.api.deps import get_device_registry
from clipcut.domains.devices.schemas import DeviceResponse
from clipcut.domains.devices.services import DeviceRegistry

router = APIRouter(tags=["devices"])


@router.get("/devices", response_model=List[DeviceResponse])
async def list_devices(registry: DeviceRegistry = Depends(get_device_registry)):
    """Все известные устройства, включая отключенные"""
    return [DeviceResponse.from_entity(device) for device in registry.list()]


@router.get("/identity")
async def get_identity(request: Request) -> Dict[str, str]:
    """Идентичность устройства, на котором запущен координатор"""
    return request.app.state.identity
