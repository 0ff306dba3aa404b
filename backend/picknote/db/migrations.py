"""
启动时的数据库结构补齐

老版本创建的 picknote.db 缺少后来新增的列，启动时按 REQUIRED_COLUMNS 逐列补上；
system_config.db_version 只用于记录，不决定是否补列。
"""

import logging
from typing import Dict, List, Optional, Set, Tuple

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

# 当前数据库版本 - 每次有结构更新时递增
CURRENT_DB_VERSION = "1.3.0"


async def get_db_version(db: AsyncSession) -> Optional[str]:
    """获取数据库版本，没有记录时返回 None"""
    result = await db.execute(text(
        "SELECT value FROM system_config WHERE key = 'db_version'"
    ))
    row = result.fetchone()
    return row[0] if row else None


async def set_db_version(db: AsyncSession, version: str) -> None:
    """设置数据库版本"""
    await db.execute(text(
        "INSERT OR REPLACE INTO system_config (key, value) VALUES ('db_version', :version)"
    ), {"version": version})
    await db.commit()


async def ensure_system_config_table(db: AsyncSession) -> None:
    """确保 system_config 表存在"""
    await db.execute(text("""
        CREATE TABLE IF NOT EXISTS system_config (
            key TEXT PRIMARY KEY,
            value TEXT,
            updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """))
    await db.commit()


async def table_columns(db: AsyncSession, table: str) -> Set[str]:
    """表的列名集合，表不存在时为空集合"""
    result = await db.execute(text(f"PRAGMA table_info({table})"))
    return {row[1] for row in result.fetchall()}


async def check_column_exists(db: AsyncSession, table: str, column: str) -> bool:
    return column in await table_columns(db, table)


# 首个版本之后新增的列: (表名, 列名, 列类型, 默认值)
REQUIRED_COLUMNS: List[Tuple[str, str, str, Optional[str]]] = [
    ("products", "category_id", "INTEGER", None),
    ("products", "channel", "VARCHAR(50)", None),
    ("products", "unit", "VARCHAR(20)", None),
    ("products", "price", "NUMERIC(12,2)", None),
    ("products", "min_order_qty", "INTEGER", "1"),
    ("purchases", "photos", "JSON", "'[]'"),
]


async def ensure_all_columns(db: AsyncSession) -> List[str]:
    """
    补齐 REQUIRED_COLUMNS 中缺失的列，返回新加的 "表.列" 列表

    每次启动都检查，不看版本号；表不存在时跳过（由 create_all 新建）。
    单列失败只记录警告并回滚，其余列继续。
    """
    added: List[str] = []
    existing: Dict[str, Set[str]] = {}

    for table, column, col_type, default in REQUIRED_COLUMNS:
        if table not in existing:
            existing[table] = await table_columns(db, table)
        columns = existing[table]
        if not columns:
            logger.debug(f"表 {table} 不存在，跳过添加列 {column}")
            continue
        if column in columns:
            continue

        sql = f"ALTER TABLE {table} ADD COLUMN {column} {col_type}"
        if default is not None:
            sql += f" DEFAULT {default}"
        try:
            await db.execute(text(sql))
            await db.commit()
        except SQLAlchemyError as e:
            logger.warning(f"添加列 {table}.{column} 失败: {e}")
            await db.rollback()
            continue

        columns.add(column)
        added.append(f"{table}.{column}")
        logger.info(f"[+] 已添加列: {table}.{column}")

    return added


async def run_migrations(db: AsyncSession) -> dict:
    """启动时运行：补列并记录数据库版本"""
    await ensure_system_config_table(db)

    old_version = await get_db_version(db)
    logger.info(f"数据库版本检查: {old_version or '未知'} -> {CURRENT_DB_VERSION}")

    columns_added = await ensure_all_columns(db)
    if columns_added:
        logger.info(f"数据库结构更新: 添加了 {len(columns_added)} 个列")
    else:
        logger.info("数据库结构完整，无需更新")

    if old_version != CURRENT_DB_VERSION:
        await set_db_version(db, CURRENT_DB_VERSION)
        logger.info(f"数据库版本已更新为: {CURRENT_DB_VERSION}")

    return {
        "old_version": old_version,
        "new_version": CURRENT_DB_VERSION,
        "columns_added": columns_added,
    }
