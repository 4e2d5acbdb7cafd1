import asyncio
import logging
import shutil
import weakref
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, List, Optional, Set

from sqlalchemy import select, func
from sqlalchemy.orm import sessionmaker

from clipcut.core.clock import utcnow
from clipcut.db.models.item import Item as ItemModel
from clipcut.domains.clipboard.entities import Cut, Item, ItemKind
from clipcut.domains.clipboard.exceptions import BlobStorageError, ItemNotFoundError

logger = logging.getLogger(__name__)

# Получает копию элемента; возвращает элемент для сохранения или None для удаления
Mutator = Callable[[Item], Optional[Item]]


class ItemRepository:
    """Репозиторий элементов буфера: метаданные в БД, содержимое файлов на диске.

    Все изменения одного элемента (update/delete) выполняются под блокировкой
    этого элемента, поэтому два параллельных подтверждения никогда не увидят
    один и тот же устаревший pending.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        files_dir: Path,
        clock: Callable[[], datetime] = utcnow
    ):
        self.session_factory = session_factory
        self.files_dir = Path(files_dir)
        self._clock = clock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        self._last_created_at: Optional[datetime] = None

    async def init(self) -> None:
        """Подготовка каталога файлов и чистка файлов без метаданных"""
        self.files_dir.mkdir(parents=True, exist_ok=True)

        async with self.session_factory() as session:
            result = await session.execute(select(func.max(ItemModel.created_at)))
            self._last_created_at = result.scalar()

            result = await session.execute(
                select(ItemModel.stored_name).where(ItemModel.stored_name.isnot(None))
            )
            referenced = set(result.scalars().all())

        removed = await asyncio.to_thread(self._prune_orphan_blobs, referenced)
        if removed:
            logger.info(f"Pruned {removed} orphaned blob(s) from {self.files_dir}")

    async def list_all(self) -> List[Item]:
        """Все элементы, новые первыми"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(ItemModel).order_by(ItemModel.created_at.desc())
            )
            return [self._to_domain(model) for model in result.scalars().all()]

    async def list_cut(self) -> List[Item]:
        """Элементы, находящиеся в состоянии вырезания"""
        async with self.session_factory() as session:
            result = await session.execute(
                select(ItemModel)
                .where(ItemModel.cut_token.isnot(None))
                .order_by(ItemModel.created_at.desc())
            )
            return [self._to_domain(model) for model in result.scalars().all()]

    async def get(self, item_id: str) -> Optional[Item]:
        async with self.session_factory() as session:
            model = await session.get(ItemModel, item_id)
            return self._to_domain(model) if model else None

    async def add_text(self, text: str) -> Item:
        """Создание текстового элемента"""
        item = Item.create_text(str(text), self._next_created_at())

        async with self.session_factory() as session:
            session.add(self._to_model(item))
            await session.commit()

        logger.info(f"Text item {item.id} added ({len(item.text)} chars)")
        return item

    async def add_file(self, display_name: str, source: Path, mime_type: Optional[str] = None) -> Item:
        """Создание файлового элемента; исходный файл перемещается в хранилище"""
        item_id = Item.new_id()
        stored_name = Item.stored_name_for(item_id, display_name)

        # Сначала файл, потом метаданные
        try:
            size = await asyncio.to_thread(self._place_blob, Path(source), self.files_dir / stored_name)
        except OSError as e:
            raise BlobStorageError(f"Could not store {display_name}: {e}") from e

        item = Item(
            id=item_id,
            kind=ItemKind.FILE,
            created_at=self._next_created_at(),
            name=display_name,
            stored_name=stored_name,
            size=size,
            mime_type=mime_type or "application/octet-stream"
        )

        try:
            async with self.session_factory() as session:
                session.add(self._to_model(item))
                await session.commit()
        except Exception:
            self._remove_blob(stored_name)
            raise

        logger.info(f"File item {item.id} added: {display_name} ({size} bytes)")
        return item

    async def update(self, item_id: str, mutator: Mutator) -> Optional[Item]:
        """Атомарное чтение-изменение-запись одного элемента.

        Возвращает сохраненный элемент или None, если мутатор удалил элемент.
        Исключение из мутатора откатывает изменение.
        """
        async with self._lock_for(item_id):
            async with self.session_factory() as session:
                model = await session.get(ItemModel, item_id)
                if model is None:
                    raise ItemNotFoundError(item_id)

                updated = mutator(self._to_domain(model))

                if updated is None:
                    stored_name = model.stored_name
                    await session.delete(model)
                    await session.commit()
                    self._remove_blob(stored_name)
                    logger.info(f"Item {item_id} deleted")
                    return None

                self._apply_cut(model, updated.cut)
                await session.commit()
                return updated

    async def delete(self, item_id: str) -> bool:
        """Удаление элемента и его файла"""
        async with self._lock_for(item_id):
            async with self.session_factory() as session:
                model = await session.get(ItemModel, item_id)
                if model is None:
                    return False

                stored_name = model.stored_name
                await session.delete(model)
                await session.commit()

            self._remove_blob(stored_name)

        logger.info(f"Item {item_id} deleted")
        return True

    def blob_path(self, item: Item) -> Optional[Path]:
        if item.kind != ItemKind.FILE or not item.stored_name:
            return None
        return self.files_dir / item.stored_name

    def _lock_for(self, item_id: str) -> asyncio.Lock:
        lock = self._locks.get(item_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[item_id] = lock
        return lock

    def _next_created_at(self) -> datetime:
        now = self._clock()
        if self._last_created_at is not None and now <= self._last_created_at:
            now = self._last_created_at + timedelta(microseconds=1)
        self._last_created_at = now
        return now

    def _place_blob(self, source: Path, dest: Path) -> int:
        self.files_dir.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(dest))
        return dest.stat().st_size

    def _remove_blob(self, stored_name: Optional[str]) -> None:
        if not stored_name:
            return
        try:
            (self.files_dir / stored_name).unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove blob {stored_name}: {e}")

    def _prune_orphan_blobs(self, referenced: Set[str]) -> int:
        removed = 0
        for path in self.files_dir.iterdir():
            if not path.is_file() or path.name in referenced:
                continue
            try:
                path.unlink()
                removed += 1
            except OSError as e:
                logger.warning(f"Could not prune blob {path.name}: {e}")
        return removed

    @staticmethod
    def _apply_cut(model: ItemModel, cut: Optional[Cut]) -> None:
        if cut is None:
            model.cut_token = None
            model.cut_owner = None
            model.cut_pending = None
            model.cut_deadline = None
            return

        model.cut_token = cut.token
        model.cut_owner = cut.owner
        model.cut_pending = cut.sorted_pending()
        model.cut_deadline = cut.deadline

    def _to_model(self, item: Item) -> ItemModel:
        model = ItemModel(
            id=item.id,
            kind=item.kind.value,
            created_at=item.created_at,
            text=item.text,
            name=item.name,
            stored_name=item.stored_name,
            size=item.size,
            mime_type=item.mime_type
        )
        self._apply_cut(model, item.cut)
        return model

    def _to_domain(self, model: ItemModel) -> Item:
        """Преобразование модели БД в доменную сущность"""
        cut = None
        if model.cut_token:
            cut = Cut(
                token=model.cut_token,
                owner=model.cut_owner,
                pending=model.cut_pending or [],
                deadline=model.cut_deadline
            )

        return Item(
            id=model.id,
            kind=ItemKind(model.kind),
            created_at=model.created_at,
            text=model.text,
            name=model.name,
            stored_name=model.stored_name,
            size=model.size,
            mime_type=model.mime_type,
            cut=cut
        )
