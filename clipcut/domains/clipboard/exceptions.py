class ClipboardError(Exception):
    """Базовая ошибка домена буфера обмена"""


class ItemNotFoundError(ClipboardError):
    """Элемент не найден"""

    def __init__(self, item_id: str):
        super().__init__(f"Item {item_id} not found")
        self.item_id = item_id


class InvalidStateError(ClipboardError):
    """Операция недопустима в текущем состоянии элемента"""


class TokenMismatchError(ClipboardError):
    """Токен подтверждения не совпадает с токеном текущего вырезания"""


class ClipboardValidationError(ClipboardError):
    """Не заполнено обязательное поле или некорректное значение"""


class BlobStorageError(ClipboardError):
    """Ошибка копирования/перемещения/удаления файла"""
