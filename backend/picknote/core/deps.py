"""依赖注入 - 单机版（无认证）"""
from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from picknote.core.config import Settings
from picknote.services.storage import LocalImageStorage


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    获取数据库会话依赖
    """
    async with request.app.state.database.session() as session:
        yield session


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> LocalImageStorage:
    return request.app.state.storage
