from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker


def to_async_url(url: str) -> str:
    """把 sqlite:/// 地址转换为 aiosqlite 驱动地址"""
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite 默认不检查外键，每个连接都要单独打开
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """数据库句柄

    由 create_app() 创建并挂到 app.state 上，请求通过依赖注入拿到会话，
    服务类在构造时接收会话，不使用模块级全局引擎。
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = to_async_url(url)
        self.engine: AsyncEngine = create_async_engine(
            self.url,
            echo=echo,
            future=True,
        )
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def session(self) -> AsyncSession:
        return self.SessionLocal()

    async def dispose(self) -> None:
        """关闭连接池中的所有连接"""
        await self.engine.dispose()
