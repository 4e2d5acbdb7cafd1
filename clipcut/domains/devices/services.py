import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from clipcut.core.clock import utcnow
from clipcut.domains.devices.entities import Channel, Device

logger = logging.getLogger(__name__)


class DeviceRegistry:
    """Реестр устройств: кто подключен и когда был активен.

    Хранится только в памяти. Записи не удаляются: отключенное устройство
    остается известным и попадает в pending новых вырезаний.
    Методы синхронные и выполняются в цикле событий целиком, поэтому
    изменения по одному устройству не перемежаются.
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._devices: Dict[str, Device] = {}
        self._clock = clock

    def register(self, device_id: str, name: str, channel: Channel) -> Device:
        """Регистрация устройства и привязка живого канала"""
        device = self._devices.get(device_id)
        if device is None:
            device = Device(device_id, name, self._clock())
            self._devices[device_id] = device
            logger.info(f"Device {device_id} ({name}) registered")
        else:
            device.name = name
            device.touch(self._clock())
            logger.info(f"Device {device_id} ({name}) reconnected")

        device.channel = channel
        return device

    def touch(self, device_id: str) -> None:
        device = self._devices.get(device_id)
        if device:
            device.touch(self._clock())

    def disconnect(self, device_id: str, channel: Optional[Channel] = None) -> None:
        """Отключение устройства; запись сохраняется.

        Если передан channel, отвязываем только его: новое подключение того же
        устройства не должно сбрасываться закрытием старого.
        """
        device = self._devices.get(device_id)
        if device is None or device.channel is None:
            return
        if channel is not None and device.channel is not channel:
            return

        device.channel = None
        device.touch(self._clock())
        logger.info(f"Device {device_id} disconnected")

    def get(self, device_id: str) -> Optional[Device]:
        return self._devices.get(device_id)

    def known_ids(self) -> List[str]:
        return list(self._devices.keys())

    def is_online(self, device_id: str) -> bool:
        device = self._devices.get(device_id)
        return device is not None and device.online

    def online(self) -> List[Device]:
        return [device for device in self._devices.values() if device.online]

    def list(self) -> List[Device]:
        return list(self._devices.values())
