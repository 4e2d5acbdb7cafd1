from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Literal
from datetime import datetime, timezone

from clipcut.domains.clipboard.entities import Cut, Item, ItemKind


class CamelModel(BaseModel):
    """Базовая схема: camelCase на проводе, snake_case в коде"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CutResponse(CamelModel):
    """Схема состояния вырезания"""
    token: str
    owner: str
    pending: List[str]
    deadline: datetime

    @classmethod
    def from_entity(cls, cut: Cut) -> "CutResponse":
        return cls(
            token=cut.token,
            owner=cut.owner,
            pending=cut.sorted_pending(),
            deadline=cut.deadline.replace(tzinfo=timezone.utc)
        )


class ItemResponse(CamelModel):
    """Схема для ответа с данными элемента"""
    id: str
    kind: ItemKind
    created_at: datetime
    text: Optional[str] = None
    name: Optional[str] = None
    stored_name: Optional[str] = None
    size: Optional[int] = None
    mime_type: Optional[str] = None
    cut: Optional[CutResponse] = None

    @classmethod
    def from_entity(cls, item: Item) -> "ItemResponse":
        return cls(
            id=item.id,
            kind=item.kind,
            created_at=item.created_at.replace(tzinfo=timezone.utc),
            text=item.text,
            name=item.name,
            stored_name=item.stored_name,
            size=item.size,
            mime_type=item.mime_type,
            cut=CutResponse.from_entity(item.cut) if item.cut else None
        )


class TextItemCreate(BaseModel):
    """Схема для создания текстового элемента"""
    text: str = Field(..., min_length=1)


class CutCreate(CamelModel):
    """Схема для запроса на вырезание.

    Поля необязательны на уровне схемы: отсутствие владельца - это 400, а не 422.
    """
    owner_id: Optional[str] = None
    ttl_seconds: Optional[float] = None


class PasteAckRequest(CamelModel):
    """Схема подтверждения вставки"""
    device_id: Optional[str] = None
    token: Optional[str] = None


class PasteAckResponse(CamelModel):
    ok: bool
    pending: Optional[List[str]] = None
    deleted: Optional[bool] = None


class OkResponse(BaseModel):
    ok: bool = True


# Сообщения живого канала (устройство -> координатор)

class RegisterMessage(CamelModel):
    type: Literal["register"]
    device_id: Optional[str] = None
    name: Optional[str] = None

    @field_validator("device_id", "name")
    @classmethod
    def blank_to_none(cls, v):
        if v is not None and not str(v).strip():
            return None
        return v


class PasteAckMessage(CamelModel):
    type: Literal["paste-ack"]
    item_id: str = Field(..., min_length=1)
    token: str = Field(..., min_length=1)
    device_id: str = Field(..., min_length=1)


# Сообщения живого канала (координатор -> устройство)

class RegisteredMessage(CamelModel):
    type: Literal["registered"] = "registered"
    device_id: str


class PasteAckResultMessage(CamelModel):
    type: Literal["paste-ack-result"] = "paste-ack-result"
    ok: bool
    item_id: Optional[str] = None
    pending: Optional[List[str]] = None
    deleted: Optional[bool] = None
    reason: Optional[str] = None


class ErrorMessage(CamelModel):
    type: Literal["error"] = "error"
    reason: str


# События, рассылаемые устройствам

class CutCreatedEvent(CamelModel):
    type: Literal["cut-created"] = "cut-created"
    item_id: str
    cut: CutResponse


class PasteAckEvent(CamelModel):
    type: Literal["paste-ack"] = "paste-ack"
    item_id: str
    device_id: str
    pending: List[str]


class ItemDeletedEvent(CamelModel):
    type: Literal["item-deleted"] = "item-deleted"
    item_id: str


class CutExpiredEvent(CamelModel):
    type: Literal["cut-expired"] = "cut-expired"
    item_id: str
