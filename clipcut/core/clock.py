from datetime import datetime, timezone


def utcnow() -> datetime:
    """Текущее время UTC без tzinfo (так оно хранится в БД)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)
