import asyncio
import logging
from typing import Any, Dict

from pydantic import BaseModel

from clipcut.domains.devices.entities import Channel, Device
from clipcut.domains.devices.services import DeviceRegistry

logger = logging.getLogger(__name__)


class NotificationRouter:
    """Доставка событий по живым каналам устройств.

    Доставка best-effort: без очереди и повторов. Сломанный или медленный
    канал не мешает остальным получателям и отвязывается от устройства.
    """

    def __init__(self, registry: DeviceRegistry, send_timeout: float = 5.0):
        self.registry = registry
        self.send_timeout = send_timeout

    async def broadcast(self, event: BaseModel) -> int:
        """Рассылка события всем подключенным устройствам"""
        payload = self._encode(event)
        devices = self.registry.online()
        if not devices:
            return 0

        results = await asyncio.gather(*(self._deliver(device, payload) for device in devices))
        return sum(1 for delivered in results if delivered)

    async def notify(self, device_id: str, event: BaseModel) -> bool:
        """Отправка события одному устройству; офлайн - молча пропускаем"""
        device = self.registry.get(device_id)
        if device is None or not device.online:
            logger.debug(f"Dropping {getattr(event, 'type', 'event')} for offline device {device_id}")
            return False
        return await self._deliver(device, self._encode(event))

    async def _deliver(self, device: Device, payload: Dict[str, Any]) -> bool:
        channel = device.channel
        if channel is None:
            return False

        try:
            await asyncio.wait_for(channel.send_json(payload), timeout=self.send_timeout)
            return True
        except Exception as e:
            logger.warning(f"Delivery of {payload.get('type')} to device {device.id} failed: {e!r}")
            self.registry.disconnect(device.id, channel)
            await self._close(device.id, channel)
            return False

    async def _close(self, device_id: str, channel: Channel) -> None:
        """Закрытие отвязанного канала: клиент переподключится и получит досылку через register"""
        try:
            await asyncio.wait_for(channel.close(), timeout=self.send_timeout)
        except Exception as e:
            logger.debug(f"Closing channel of device {device_id} failed: {e!r}")

    @staticmethod
    def _encode(event: BaseModel) -> Dict[str, Any]:
        return event.model_dump(mode="json", by_alias=True, exclude_none=True)
