import asyncio
import logging
import math
from datetime import datetime
from typing import Callable, List, Optional, TYPE_CHECKING

from clipcut.core.clock import utcnow
from clipcut.domains.clipboard.entities import Cut, Item
from clipcut.domains.clipboard.exceptions import (
    ClipboardValidationError, InvalidStateError, ItemNotFoundError, TokenMismatchError
)
from clipcut.domains.clipboard.schemas import (
    CutResponse, CutCreatedEvent, CutExpiredEvent, ItemDeletedEvent, PasteAckEvent
)
from clipcut.domains.devices.services import DeviceRegistry
from clipcut.domains.notifications.services import NotificationRouter

if TYPE_CHECKING:
    from clipcut.db.repositories.item_repository import ItemRepository

logger = logging.getLogger(__name__)

MAX_CUT_TTL_SECONDS = 7 * 24 * 3600


class AckResult:
    """Результат подтверждения вставки"""

    def __init__(self, item_id: str, pending: List[str], deleted: bool, changed: bool):
        self.item_id = item_id
        self.pending = pending
        self.deleted = deleted
        self.changed = changed

    def __repr__(self) -> str:
        return f"AckResult(item_id={self.item_id}, pending={self.pending}, deleted={self.deleted})"


class CutCoordinator:
    """Жизненный цикл вырезания: Free -> Cut -> Free (истек) | Deleted.

    Все переходы идут через ItemRepository.update, поэтому подтверждения,
    очистка по таймауту и удаление одного элемента линеаризуются.
    Уведомления отправляются после фиксации изменения.
    """

    def __init__(
        self,
        repository: "ItemRepository",
        registry: DeviceRegistry,
        notifier: NotificationRouter,
        clock: Callable[[], datetime] = utcnow,
        default_ttl: float = 300
    ):
        self.repository = repository
        self.registry = registry
        self.notifier = notifier
        self.clock = clock
        self.default_ttl = default_ttl
        self._sweeper: Optional[asyncio.Task] = None

    async def create_cut(self, item_id: str, owner_id: Optional[str], ttl: Optional[float] = None) -> Item:
        """Вырезание элемента владельцем owner_id"""
        if not owner_id:
            raise ClipboardValidationError("ownerId required")
        ttl = self.default_ttl if ttl is None else ttl
        if not math.isfinite(ttl) or ttl <= 0:
            raise ClipboardValidationError("ttlSeconds must be positive")
        if ttl > MAX_CUT_TTL_SECONDS:
            raise ClipboardValidationError(f"ttlSeconds must not exceed {MAX_CUT_TTL_SECONDS}")

        pending = [device_id for device_id in self.registry.known_ids() if device_id != owner_id]
        if not pending:
            raise InvalidStateError("No recipient devices known")

        now = self.clock()

        def mutate(item: Item) -> Item:
            if item.is_cut:
                raise InvalidStateError(f"Item {item.id} is already cut")
            item.cut = Cut.mint(owner_id, pending, ttl, now)
            return item

        updated = await self.repository.update(item_id, mutate)
        logger.info(f"Item {item_id} cut by {owner_id}, pending {updated.cut.sorted_pending()}")

        await self.notifier.broadcast(
            CutCreatedEvent(item_id=item_id, cut=CutResponse.from_entity(updated.cut))
        )
        return updated

    async def acknowledge(self, item_id: str, device_id: str, token: Optional[str]) -> AckResult:
        """Подтверждение вставки устройством device_id"""
        state = {}

        def mutate(item: Item) -> Optional[Item]:
            if not item.is_cut:
                raise InvalidStateError(f"Item {item.id} has no active cut")
            if not item.cut.matches(token):
                raise TokenMismatchError("Invalid token")

            state["owner"] = item.cut.owner
            state["changed"] = device_id in item.cut.pending
            item.cut.pending.discard(device_id)
            state["pending"] = item.cut.sorted_pending()

            # Последнее подтверждение удаляет элемент в той же критической секции
            if state["changed"] and not item.cut.pending:
                return None
            return item

        updated = await self.repository.update(item_id, mutate)
        result = AckResult(
            item_id=item_id,
            pending=state["pending"],
            deleted=updated is None,
            changed=state["changed"]
        )

        if not result.changed:
            logger.debug(f"Duplicate paste-ack for item {item_id} from {device_id}")
            return result

        logger.info(f"Paste-ack for item {item_id} from {device_id}, pending {result.pending}")
        await self.notifier.notify(
            state["owner"],
            PasteAckEvent(item_id=item_id, device_id=device_id, pending=result.pending)
        )
        if result.deleted:
            await self.notifier.broadcast(ItemDeletedEvent(item_id=item_id))
        return result

    async def cancel(self, item_id: str) -> None:
        """Явное удаление элемента из любого состояния"""
        if not await self.repository.delete(item_id):
            raise ItemNotFoundError(item_id)
        await self.notifier.broadcast(ItemDeletedEvent(item_id=item_id))

    async def expire_sweep(self, now: Optional[datetime] = None) -> List[str]:
        """Снятие вырезания с просроченных элементов; сами элементы остаются"""
        now = now or self.clock()
        expired = []

        for item in await self.repository.list_cut():
            if not item.cut.is_expired(now):
                continue

            cleared = []

            def mutate(current: Item) -> Item:
                # Состояние могло измениться между списком и блокировкой
                if current.is_cut and current.cut.is_expired(now):
                    current.cut = None
                    cleared.append(current.id)
                return current

            try:
                await self.repository.update(item.id, mutate)
            except ItemNotFoundError:
                continue

            if cleared:
                expired.append(item.id)
                logger.info(f"Cut on item {item.id} expired")
                await self.notifier.broadcast(CutExpiredEvent(item_id=item.id))

        return expired

    async def open_cuts(self) -> List[Item]:
        return await self.repository.list_cut()

    def start_sweeper(self, interval: float) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop(interval))

    async def stop_sweeper(self) -> None:
        task = self._sweeper
        self._sweeper = None
        if task:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _sweep_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                expired = await self.expire_sweep()
                if expired:
                    logger.info(f"Sweep expired {len(expired)} cut(s)")
            except Exception as e:
                logger.error(f"Cut sweep failed: {e}")
