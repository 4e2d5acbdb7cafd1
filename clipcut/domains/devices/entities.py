from datetime import datetime
from typing import Any, Optional, Protocol

from clipcut.core.clock import utcnow


class Channel(Protocol):
    """Живой канал устройства (WebSocket или любой объект с send_json)"""

    async def send_json(self, data: Any) -> None:
        ...

    async def close(self) -> None:
        ...


class Device:
    """Известное координатору устройство"""

    def __init__(self, id: str, name: str, last_seen: Optional[datetime] = None):
        self.id = id
        self.name = name
        self.last_seen = last_seen or utcnow()
        self.channel: Optional[Channel] = None

    @property
    def online(self) -> bool:
        return self.channel is not None

    def touch(self, now: Optional[datetime] = None) -> None:
        self.last_seen = now or utcnow()

    def __repr__(self) -> str:
        return f"Device(id={self.id}, name={self.name}, online={self.online})"
