"""
一键清除业务数据脚本
删除所有进货单、货品、分类和供应商，数据库结构保留
"""

import asyncio
import os
import sys

# 添加项目路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from picknote.core.config import settings
from picknote.db.session import Database
from picknote.models import Category, Supplier, Product, Purchase, PurchaseItem

# 按照外键依赖顺序删除
TABLES_TO_CLEAR = [
    (PurchaseItem, "进货明细"),
    (Purchase, "进货单"),
    (Product, "货品"),
    (Category, "分类"),
    (Supplier, "供应商"),
]


async def clear_business_data():
    print("=" * 60)
    print("🧹 进货管理系统 - 清除业务数据")
    print("=" * 60 + "\n")

    print("⚠️  警告：此操作将删除所有业务数据！")
    print("   包括：进货单、货品、分类、供应商\n")

    confirm = input("确认清除所有数据？输入 'YES' 确认: ")
    if confirm != "YES":
        print("\n❌ 操作已取消")
        return

    print("\n🗑️  开始清除数据...\n")

    database = Database(settings.SQLITE_DATABASE_URI)
    try:
        async with database.session() as db:
            try:
                for model, name in TABLES_TO_CLEAR:
                    result = await db.execute(delete(model))
                    print(f"   ✓ 清除 {name}: {result.rowcount} 条")
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                print(f"\n❌ 清除失败，已回滚: {e}")
                raise

        print("\n" + "=" * 60)
        print("✅ 业务数据已清除！")
        print("=" * 60)
    finally:
        await database.dispose()


if __name__ == "__main__":
    asyncio.run(clear_business_data())
