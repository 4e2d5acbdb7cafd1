from clipcut.domains.clipboard.entities import Cut, Item, ItemKind
from clipcut.domains.clipboard.exceptions import (
    ClipboardError, ItemNotFoundError, InvalidStateError, TokenMismatchError,
    ClipboardValidationError, BlobStorageError
)
from clipcut.domains.clipboard.schemas import (
    CamelModel, CutResponse, ItemResponse, TextItemCreate, CutCreate,
    PasteAckRequest, PasteAckResponse, OkResponse, RegisterMessage,
    PasteAckMessage, RegisteredMessage, PasteAckResultMessage, ErrorMessage,
    CutCreatedEvent, PasteAckEvent, ItemDeletedEvent, CutExpiredEvent
)
from clipcut.domains.clipboard.services import AckResult, CutCoordinator

__all__ = [
    "Cut", "Item", "ItemKind",
    "ClipboardError", "ItemNotFoundError", "InvalidStateError", "TokenMismatchError",
    "ClipboardValidationError", "BlobStorageError",
    "CamelModel", "CutResponse", "ItemResponse", "TextItemCreate", "CutCreate",
    "PasteAckRequest", "PasteAckResponse", "OkResponse", "RegisterMessage",
    "PasteAckMessage", "RegisteredMessage", "PasteAckResultMessage", "ErrorMessage",
    "CutCreatedEvent", "PasteAckEvent", "ItemDeletedEvent", "CutExpiredEvent",
    "AckResult", "CutCoordinator"
]
