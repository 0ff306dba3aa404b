"""
日志配置

控制台彩色输出；配置了日志目录时，另外按天写 app_YYYY-MM-DD.log，
ERROR 及以上再单独写一份 error_YYYY-MM-DD.log，方便排查导入和进货单问题。
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 第三方库只保留警告以上
QUIET_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "sqlalchemy.engine": logging.WARNING,
    "aiosqlite": logging.WARNING,
    "multipart": logging.WARNING,
    "PIL": logging.WARNING,
}


class ColoredFormatter(logging.Formatter):
    """控制台用，级别名带颜色"""

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        # 复制记录，文件处理器拿到的仍是原始级别名
        colored = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelno, "")
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    return handler


def setup_logging(log_level: str = "INFO", log_dir: Optional[str] = "logs"):
    """
    初始化根日志器，可重复调用（每次先清空已有处理器）

    Args:
        log_level: 日志级别名称，无法识别时按 INFO
        log_dir: 日志文件目录，为空则只输出到控制台
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root.handlers.clear()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))
    root.addHandler(console)

    if log_dir:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        day = datetime.now().strftime("%Y-%m-%d")
        root.addHandler(_file_handler(directory / f"app_{day}.log", logging.INFO))
        root.addHandler(_file_handler(directory / f"error_{day}.log", logging.ERROR))

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    logging.getLogger(__name__).info(
        "📋 日志系统初始化完成 (级别=%s, 目录=%s)", log_level.upper(), log_dir or "-"
    )


def get_logger(name: str) -> logging.Logger:
    """获取命名日志器，各模块用 get_logger(__name__)"""
    return logging.getLogger(name)
