from clipcut.api.http.health import router as health_router
from clipcut.api.http.items import router as items_router
from clipcut.api.http.files import router as files_router
from clipcut.api.http.devices import router as devices_router

__all__ = [
    "health_router",
    "items_router",
    "files_router",
    "devices_router"
]
