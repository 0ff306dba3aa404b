"""
图片文件存储
把上传或从 Excel 中提取的图片写入本地目录，返回对外访问地址
"""

import logging
import os
import re
import time
import uuid
from pathlib import Path

logger = logging.getLogger(__name__)


def _timestamp_ms() -> int:
    return int(time.time() * 1000)


def _random_suffix(length: int = 6) -> str:
    return uuid.uuid4().hex[:length]


def safe_code_fragment(code: str, max_length: int = 20) -> str:
    """只保留字母数字，其余字符替换为下划线"""
    return re.sub(r"[^a-zA-Z0-9]", "_", code)[:max_length]


def import_image_name(code: str, extension: str) -> str:
    """Excel 导入图片的文件名：编码片段_时间戳_随机串.扩展名"""
    ext = extension.lstrip(".") or "png"
    return f"{safe_code_fragment(code)}_{_timestamp_ms()}_{_random_suffix()}.{ext}"


def upload_image_name(original_name: str) -> str:
    """手动上传图片的文件名，没有扩展名时默认 .png"""
    ext = os.path.splitext(original_name or "")[1] or ".png"
    return f"manual_{_timestamp_ms()}_{_random_suffix(5)}{ext}"


class LocalImageStorage:
    """本地图片存储

    文件写到 {root_dir}/{subdir}/ 下，访问地址为 {url_prefix}/{subdir}/{文件名}
    """

    def __init__(self, root_dir: str, url_prefix: str = "/uploads", subdir: str = "products"):
        self.directory = Path(root_dir) / subdir
        self.url_prefix = f"{url_prefix.rstrip('/')}/{subdir}"

    def write(self, data: bytes, suggested_name: str) -> str:
        """写入文件并返回访问地址"""
        file_name = os.path.basename(suggested_name)
        self.directory.mkdir(parents=True, exist_ok=True)
        (self.directory / file_name).write_bytes(data)
        logger.debug(f"图片已保存: {file_name} ({len(data)} bytes)")
        return f"{self.url_prefix}/{file_name}"
