from clipcut.domains.devices.entities import Channel, Device
from clipcut.domains.devices.services import DeviceRegistry

__all__ = ["Channel", "Device", "DeviceRegistry"]
