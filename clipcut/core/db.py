from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from clipcut.db.base import Base


def create_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Асинхронный движок"""
    return create_async_engine(database_url, future=True, echo=echo)


def create_session_factory(engine: AsyncEngine) -> sessionmaker:
    """Фабрика сессий"""
    return sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Создание таблиц, если их еще нет"""
    # импорт регистрирует модели в Base.metadata
    import clipcut.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
