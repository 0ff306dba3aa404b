"""
数据库迁移测试：老版本数据库补齐新增字段
"""
import pytest
from sqlalchemy import text

from picknote.db.migrations import CURRENT_DB_VERSION, check_column_exists, run_migrations
from picknote.db.session import Database


@pytest.mark.asyncio
async def test_adds_missing_columns_to_old_database(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'old.db'}")
    try:
        async with database.session() as db:
            await db.execute(text(
                "CREATE TABLE products (id INTEGER PRIMARY KEY, code VARCHAR(50) NOT NULL UNIQUE, "
                "name VARCHAR(200) NOT NULL, category VARCHAR(50) NOT NULL, current_stock INTEGER NOT NULL)"
            ))
            await db.execute(text(
                "CREATE TABLE purchases (id INTEGER PRIMARY KEY, order_no VARCHAR(20) NOT NULL UNIQUE)"
            ))
            await db.execute(text(
                "INSERT INTO products (code, name, category, current_stock) VALUES ('B01', '普洱', '茶叶', 3)"
            ))
            await db.commit()

            result = await run_migrations(db)

            assert result["old_version"] is None
            assert result["new_version"] == CURRENT_DB_VERSION
            assert "products.channel" in result["columns_added"]
            assert "purchases.photos" in result["columns_added"]
            assert await check_column_exists(db, "products", "min_order_qty")

            row = (await db.execute(text("SELECT min_order_qty, current_stock FROM products"))).one()
            assert row == (1, 3)

            again = await run_migrations(db)
            assert again["columns_added"] == []
            assert again["old_version"] == CURRENT_DB_VERSION
    finally:
        await database.dispose()


@pytest.mark.asyncio
async def test_missing_table_is_skipped(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'empty.db'}")
    try:
        async with database.session() as db:
            result = await run_migrations(db)
            assert result["columns_added"] == []
    finally:
        await database.dispose()
