from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from picknote.api.api import api_router
from picknote.core.config import Settings, settings as default_settings
from picknote.core.logging_config import setup_logging, get_logger
from picknote.db.init_db import ensure_tables_exist
from picknote.db.migrations import run_migrations
from picknote.db.session import Database
from picknote.services.storage import LocalImageStorage

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 启动时
    logger.info("🚀 应用启动中...")
    database: Database = app.state.database

    await ensure_tables_exist(database.engine)
    logger.info("📊 数据库表已就绪")

    async with database.session() as db:
        result = await run_migrations(db)

    if result.get("columns_added"):
        logger.info(f"📦 数据库结构更新: 添加了 {len(result['columns_added'])} 个字段")
        for col in result["columns_added"]:
            logger.info(f"   ✅ {col}")
    if result.get("old_version") != result.get("new_version"):
        logger.info(f"📊 数据库版本: {result.get('old_version') or '初始'} → {result.get('new_version')}")

    yield
    # 关闭时
    logger.info("🛑 应用关闭中...")
    await database.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """创建应用，数据库和图片存储挂到 app.state 上"""
    settings = settings or default_settings
    setup_logging(settings.LOG_LEVEL, settings.LOG_DIR or None)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        description="进货管理系统 - 单机版",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.database = Database(settings.SQLITE_DATABASE_URI, echo=settings.SQL_DEBUG)
    app.state.storage = LocalImageStorage(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)

    # CORS配置
    if settings.BACKEND_CORS_ORIGINS:
        logger.info(f"配置CORS，允许的源: {settings.BACKEND_CORS_ORIGINS}")
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    logger.info(f"注册API路由，前缀: {settings.API_PREFIX}")
    app.include_router(api_router, prefix=settings.API_PREFIX)

    # 上传的图片
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    app.mount(settings.UPLOAD_URL_PREFIX, StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

    @app.get("/")
    async def root():
        return {"message": f"{settings.PROJECT_NAME} - 单机版"}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


# PyInstaller 打包后的入口点
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=default_settings.HOST, port=default_settings.PORT, log_level="info")
