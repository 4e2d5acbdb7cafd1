from sqlalchemy import Column, String, Text, Integer, DateTime, JSON

from clipcut.db.base import Base


class Item(Base):
    __tablename__ = "items"

    id = Column(String(36), primary_key=True)
    kind = Column(String(8), nullable=False)
    created_at = Column(DateTime, nullable=False, index=True)

    # text
    text = Column(Text, nullable=True)

    # file
    name = Column(String(512), nullable=True)
    stored_name = Column(String(128), nullable=True)
    size = Column(Integer, nullable=True)
    mime_type = Column(String(255), nullable=True)

    # Состояние вырезания; cut_token IS NULL - элемент свободен
    cut_token = Column(String(64), nullable=True)
    cut_owner = Column(String(255), nullable=True)
    cut_pending = Column(JSON, nullable=True)
    cut_deadline = Column(DateTime, nullable=True, index=True)
