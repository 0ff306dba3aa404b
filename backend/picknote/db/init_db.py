import asyncio

from sqlalchemy.ext.asyncio import AsyncEngine

from picknote.core.config import settings
from picknote.db.base import Base
from picknote.db.session import Database

# 导入所有模型，确保表能被创建
from picknote.models import Category, Product, Purchase, PurchaseItem, Supplier  # noqa: F401


async def ensure_tables_exist(engine: AsyncEngine) -> None:
    """
    确保数据库表存在（应用启动时调用）
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db() -> None:
    """
    初始化数据库 - 创建所有表
    """
    database = Database(settings.SQLITE_DATABASE_URI)
    try:
        await ensure_tables_exist(database.engine)
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(init_db())
