import secrets
import uuid
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional


class ItemKind(str, Enum):
    """Вид элемента буфера"""
    TEXT = "text"
    FILE = "file"


class Cut:
    """Вырезание: перенос элемента, ожидающий подтверждений от устройств"""

    def __init__(
        self,
        token: str,
        owner: str,
        pending: Iterable[str],
        deadline: datetime
    ):
        self.token = token
        self.owner = owner
        self.pending = set(pending)
        self.pending.discard(owner)
        self.deadline = deadline

    def is_expired(self, now: datetime) -> bool:
        return self.deadline <= now

    def matches(self, token: Optional[str]) -> bool:
        """Проверка токена подтверждения"""
        if not token:
            return False
        return secrets.compare_digest(self.token.encode("utf-8"), token.encode("utf-8"))

    def sorted_pending(self) -> list:
        return sorted(self.pending)

    @classmethod
    def mint(cls, owner: str, pending: Iterable[str], ttl_seconds: float, now: datetime) -> "Cut":
        """Новое вырезание со свежим токеном"""
        return cls(
            token=secrets.token_urlsafe(24),
            owner=owner,
            pending=pending,
            deadline=now + timedelta(seconds=ttl_seconds)
        )

    def __repr__(self) -> str:
        return f"Cut(owner={self.owner}, pending={self.sorted_pending()}, deadline={self.deadline})"


class Item:
    """Элемент общего буфера обмена"""

    def __init__(
        self,
        id: str,
        kind: ItemKind,
        created_at: datetime,
        text: Optional[str] = None,
        name: Optional[str] = None,
        stored_name: Optional[str] = None,
        size: Optional[int] = None,
        mime_type: Optional[str] = None,
        cut: Optional[Cut] = None
    ):
        self.id = id
        self.kind = kind
        self.created_at = created_at
        self.text = text
        self.name = name
        self.stored_name = stored_name
        self.size = size
        self.mime_type = mime_type
        self.cut = cut

    @property
    def is_cut(self) -> bool:
        return self.cut is not None

    @staticmethod
    def new_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def stored_name_for(item_id: str, display_name: str) -> str:
        """Имя файла в хранилище: id элемента + исходное расширение"""
        return item_id + Path(display_name).suffix

    @classmethod
    def create_text(cls, text: str, created_at: datetime) -> "Item":
        return cls(id=cls.new_id(), kind=ItemKind.TEXT, created_at=created_at, text=text)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Item):
            return False
        return self.id == other.id

    def __repr__(self) -> str:
        return f"Item(id={self.id}, kind={self.kind.value}, cut={self.cut!r})"
