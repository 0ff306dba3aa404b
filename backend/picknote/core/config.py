from typing import List, Union
import logging

from pydantic import AnyHttpUrl, Field, validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    PROJECT_NAME: str = "进货管理系统"
    API_PREFIX: str = "/api"

    # CORS配置
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # 数据库配置
    SQLITE_DATABASE_URI: str = "sqlite:///./picknote.db"
    SQL_DEBUG: bool = False

    # 图片上传目录，对外通过 UPLOAD_URL_PREFIX 访问
    UPLOAD_DIR: str = "uploads"
    UPLOAD_URL_PREFIX: str = "/uploads"

    # 进货单号冲突时的最大重试次数
    ORDER_NO_MAX_RETRIES: int = Field(default=3, ge=1)

    # 日志配置（LOG_DIR 为空时只输出到控制台）
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # 服务监听地址（单机使用，默认只监听本地）
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
logger.info(f"加载配置: API_PREFIX={settings.API_PREFIX}, CORS={settings.BACKEND_CORS_ORIGINS}")
