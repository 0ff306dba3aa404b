"""检查数据库中各表的数据量"""

import asyncio
import os
import sys

# 添加项目路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select, func

from picknote.core.config import settings
from picknote.db.session import Database
from picknote.models import Category, Supplier, Product, Purchase, PurchaseItem

TABLES = [
    (Supplier, "供应商"),
    (Category, "分类"),
    (Product, "货品"),
    (Purchase, "进货单"),
    (PurchaseItem, "进货明细"),
]


async def check_data():
    database = Database(settings.SQLITE_DATABASE_URI)
    try:
        async with database.session() as db:
            print("=== 检查数据库 ===")
            print(f"数据库: {settings.SQLITE_DATABASE_URI}\n")
            for model, name in TABLES:
                count = (await db.execute(select(func.count()).select_from(model))).scalar()
                print(f"  {name}（{model.__tablename__}）: {count}")

            negative = (await db.execute(
                select(func.count(Product.id)).where(Product.current_stock < 0)
            )).scalar()
            if negative:
                print(f"\n⚠️  有 {negative} 个货品库存为负数")
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(check_data())
