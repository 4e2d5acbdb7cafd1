from datetime import datetime, timezone

from clipcut.domains.clipboard.schemas import CamelModel
from clipcut.domains.devices.entities import Device


class DeviceResponse(CamelModel):
    """Схема для ответа с данными устройства"""
    id: str
    name: str
    online: bool
    last_seen: datetime

    @classmethod
    def from_entity(cls, device: Device) -> "DeviceResponse":
        return cls(
            id=device.id,
            name=device.name,
            online=device.online,
            last_seen=device.last_seen.replace(tzinfo=timezone.utc)
        )
