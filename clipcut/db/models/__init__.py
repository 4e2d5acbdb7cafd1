from clipcut.db.models.item import Item

__all__ = [
    "Item",
]
