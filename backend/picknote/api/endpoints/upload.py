"""图片上传API"""

from typing import Any, List

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from picknote.core.deps import get_storage
from picknote.core.logging_config import get_logger
from picknote.services.storage import LocalImageStorage, upload_image_name

router = APIRouter()
logger = get_logger(__name__)


@router.post("")
async def upload_images(
    *,
    storage: LocalImageStorage = Depends(get_storage),
    files: List[UploadFile] = File(default=[], description="图片文件"),
) -> Any:
    """上传图片，返回访问地址列表"""
    if not files:
        raise HTTPException(status_code=400, detail="没有上传文件")

    urls = []
    for upload in files:
        data = await upload.read()
        try:
            urls.append(storage.write(data, upload_image_name(upload.filename or "")))
        except OSError as e:
            logger.error(f"保存上传图片失败 {upload.filename}: {e}")
            raise HTTPException(status_code=500, detail=f"保存图片失败: {e}")

    logger.info(f"上传图片 {len(urls)} 张")
    return {"urls": urls}
