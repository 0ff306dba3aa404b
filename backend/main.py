"""进货管理系统启动入口

开发环境: python main.py（自动重载）
打包后: 切换到可执行文件所在目录，数据库和上传目录都放在那里
"""
import os
import sys

import uvicorn

from picknote.core.config import settings

FROZEN = getattr(sys, 'frozen', False)

if FROZEN:
    os.chdir(os.path.dirname(sys.executable))


if __name__ == "__main__":
    uvicorn.run(
        "picknote.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=not FROZEN,
        log_level=settings.LOG_LEVEL.lower(),
    )
