from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clipcut.api.http import devices_router, files_router, health_router, items_router
from clipcut.api.ws.sync import router as websocket_router
from clipcut.core.clock import utcnow
from clipcut.core.config import Settings, settings as default_settings
from clipcut.core.db import create_engine, create_session_factory, init_db
from clipcut.core.identity import load_device_identity
from clipcut.db.repositories.item_repository import ItemRepository
from clipcut.domains.clipboard.services import CutCoordinator
from clipcut.domains.devices.services import DeviceRegistry
from clipcut.domains.notifications.services import NotificationRouter

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    clock: Callable[[], datetime] = utcnow
) -> FastAPI:
    """Сборка приложения; состояние создается в lifespan, а не на уровне модуля"""
    settings = settings or default_settings

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings.data_dir.mkdir(parents=True, exist_ok=True)

        engine = create_engine(settings.resolved_database_url, echo=settings.sql_echo)
        await init_db(engine)

        repository = ItemRepository(create_session_factory(engine), settings.files_dir, clock=clock)
        await repository.init()

        registry = DeviceRegistry(clock=clock)
        notifier = NotificationRouter(registry, send_timeout=settings.notify_timeout_seconds)
        coordinator = CutCoordinator(
            repository,
            registry,
            notifier,
            clock=clock,
            default_ttl=settings.default_cut_ttl_seconds
        )

        app.state.settings = settings
        app.state.identity = load_device_identity(settings.identity_file)
        app.state.item_repository = repository
        app.state.device_registry = registry
        app.state.notification_router = notifier
        app.state.cut_coordinator = coordinator

        coordinator.start_sweeper(settings.sweep_interval_seconds)
        logger.info(f"Coordinator {app.state.identity['id']} started, data in {settings.data_dir}")

        try:
            yield
        finally:
            await coordinator.stop_sweeper()
            await engine.dispose()
            logger.info("Coordinator stopped")

    app = FastAPI(
        title="clipcut",
        description="Shared LAN clipboard with cut/paste acknowledgment",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(items_router)
    app.include_router(files_router)
    app.include_router(devices_router)
    app.include_router(websocket_router)

    return app


app = create_app()
