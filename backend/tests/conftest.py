import os
import sys
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio


backend_dir = Path(__file__).resolve().parents[1]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# 导入 picknote.main 时会按默认配置创建一次应用，日志和上传目录指向临时位置
os.environ.setdefault("LOG_DIR", "")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="picknote-uploads-"))

from httpx import ASGITransport, AsyncClient  # noqa: E402

from picknote.core.config import Settings  # noqa: E402
from picknote.db.init_db import ensure_tables_exist  # noqa: E402
from picknote.db.session import Database  # noqa: E402
from picknote.main import create_app  # noqa: E402
from picknote.models import Product, Supplier  # noqa: E402
from picknote.services.storage import LocalImageStorage  # noqa: E402


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'picknote-test.db'}"


@pytest_asyncio.fixture
async def database(db_url):
    db = Database(db_url)
    await ensure_tables_exist(db.engine)
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest.fixture
def storage(tmp_path):
    return LocalImageStorage(str(tmp_path / "uploads"), "/uploads")


@pytest.fixture
def test_settings(tmp_path, db_url):
    return Settings(
        SQLITE_DATABASE_URI=db_url,
        UPLOAD_DIR=str(tmp_path / "uploads"),
        LOG_DIR="",
        BACKEND_CORS_ORIGINS=[],
    )


@pytest_asyncio.fixture
async def app(test_settings):
    application = create_app(test_settings)
    # ASGITransport 不触发 lifespan，这里手动建表
    await ensure_tables_exist(application.state.database.engine)
    yield application
    await application.state.database.dispose()


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


async def add_supplier(session, name="义乌批发", **kwargs) -> Supplier:
    supplier = Supplier(name=name, **kwargs)
    session.add(supplier)
    await session.commit()
    await session.refresh(supplier)
    return supplier


async def add_product(session, code, name=None, stock=0, **kwargs) -> Product:
    product = Product(code=code, name=name or f"货品{code}", current_stock=stock, **kwargs)
    session.add(product)
    await session.commit()
    await session.refresh(product)
    return product
