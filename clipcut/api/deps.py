from starlette.requests import HTTPConnection

from clipcut.core.config import Settings
from clipcut.db.repositories.item_repository import ItemRepository
from clipcut.domains.clipboard.services import CutCoordinator
from clipcut.domains.devices.services import DeviceRegistry


# Все объекты создаются в lifespan приложения и лежат в app.state

def get_settings(conn: HTTPConnection) -> Settings:
    return conn.app.state.settings


def get_item_repository(conn: HTTPConnection) -> ItemRepository:
    return conn.app.state.item_repository


def get_device_registry(conn: HTTPConnection) -> DeviceRegistry:
    return conn.app.state.device_registry


def get_cut_coordinator(conn: HTTPConnection) -> CutCoordinator:
    return conn.app.state.cut_coordinator
