from clipcut.db.repositories.item_repository import ItemRepository

__all__ = [
    "ItemRepository",
]
