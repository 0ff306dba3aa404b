"""
货品 Excel 智能导入

表格格式（第1、2行为标题，从第3行开始是数据）：
- A列：货品名称
- B列：货品图片（嵌入单元格的图片）
- C列：店内码

每一行：
1. 名称和编码都为空的行跳过
2. 编码标准化（B3 -> B03），没有编码时自动生成
3. 根据名称识别品类
4. 保存B列图片
5. 按编码新增或更新货品（更新时不改库存，新增时库存为0）

每行单独提交，某一行失败不会撤销之前已导入的行。
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from io import BytesIO
from typing import Dict, List, Optional, Tuple
from zipfile import BadZipFile

from fastapi import HTTPException
from openpyxl import load_workbook
from openpyxl.utils.cell import coordinate_to_tuple
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from picknote.models.product import Product
from picknote.services.smart_category import guess_category, normalize_product_code
from picknote.services.storage import LocalImageStorage, import_image_name

logger = logging.getLogger(__name__)

FIRST_DATA_ROW = 3
NAME_COLUMN = 0   # A
IMAGE_COLUMN = 1  # B
CODE_COLUMN = 2   # C
IMPORT_MIN_ORDER_QTY = 1


@dataclass
class EmbeddedImage:
    data: bytes
    extension: str


@dataclass
class SheetRow:
    row_number: int
    name: str
    code: str
    image: Optional[EmbeddedImage] = None


@dataclass
class ImportRowError:
    row: int
    code: str
    message: str


@dataclass
class ImportResult:
    imported_count: int = 0
    errors: List[ImportRowError] = field(default_factory=list)

    @property
    def message(self) -> str:
        msg = f"导入完成，共处理 {self.imported_count} 个货品"
        if self.errors:
            msg += f"，{len(self.errors)} 行失败"
        return msg


def _cell_text(value) -> str:
    if value is None:
        return ""
    # 纯数字编码在 Excel 里会被存成浮点数，如 1688.0
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _anchor_cell(anchor) -> Optional[Tuple[int, int]]:
    """返回图片左上角所在单元格 (行, 列)，都从0开始"""
    marker = getattr(anchor, "_from", None)
    if marker is not None:
        return marker.row, marker.col
    if isinstance(anchor, str):
        row, col = coordinate_to_tuple(anchor)
        return row - 1, col - 1
    return None


def _raw_image_bytes(image) -> bytes:
    """表格里保存的原始图片数据（不经过 openpyxl 转成 PNG）"""
    ref = image.ref
    if hasattr(ref, "read"):
        ref.seek(0)
        return ref.read()
    with open(ref, "rb") as f:
        return f.read()


def _images_by_row(worksheet, column: int) -> Dict[int, EmbeddedImage]:
    """收集指定列的图片，键为行号（从1开始）"""
    images: Dict[int, EmbeddedImage] = {}
    for image in getattr(worksheet, "_images", []):
        cell = _anchor_cell(image.anchor)
        if cell is None or cell[1] != column:
            continue
        images[cell[0] + 1] = EmbeddedImage(
            data=_raw_image_bytes(image),
            extension=(image.format or "png").lower(),
        )
    return images


def read_product_sheet(content: bytes) -> List[SheetRow]:
    """解析导入表格的第一个工作表，格式错误时直接报错，不做任何写入"""
    try:
        workbook = load_workbook(BytesIO(content), data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, ValueError, OSError) as e:
        raise HTTPException(status_code=400, detail=f"无效的 Excel 文件: {e}")

    if not workbook.worksheets:
        raise HTTPException(status_code=400, detail="无效的 Excel 文件: 没有工作表")

    worksheet = workbook.worksheets[0]
    try:
        images = _images_by_row(worksheet, IMAGE_COLUMN)
    except (OSError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"无法读取表格中的图片: {e}")

    rows = []
    for row_number, values in enumerate(
        worksheet.iter_rows(min_row=FIRST_DATA_ROW, max_col=CODE_COLUMN + 1, values_only=True),
        start=FIRST_DATA_ROW,
    ):
        rows.append(SheetRow(
            row_number=row_number,
            name=_cell_text(values[NAME_COLUMN]),
            code=_cell_text(values[CODE_COLUMN]),
            image=images.get(row_number),
        ))
    return rows


class ProductImporter:
    """货品导入"""

    def __init__(self, db: AsyncSession, storage: LocalImageStorage):
        self.db = db
        self.storage = storage

    async def import_workbook(self, content: bytes) -> ImportResult:
        rows = read_product_sheet(content)
        result = ImportResult()

        for row in rows:
            if not row.name and not row.code:
                continue

            code = normalize_product_code(row.code) if row.code else f"AUTO_{int(time.time() * 1000)}_{row.row_number}"
            name = row.name or code
            category = guess_category(name)

            try:
                images = []
                if row.image:
                    url = self.storage.write(row.image.data, import_image_name(code, row.image.extension))
                    images.append(url)
                await self._upsert(code, name, category, images)
                await self.db.commit()
            except (OSError, SQLAlchemyError) as e:
                await self.db.rollback()
                logger.error(f"导入第 {row.row_number} 行（{code}）失败: {e}")
                result.errors.append(ImportRowError(row=row.row_number, code=code, message=str(e)))
                continue

            result.imported_count += 1

        logger.info(f"📥 {result.message}")
        return result

    async def _upsert(self, code: str, name: str, category: str, images: List[str]) -> None:
        """按编码新增或更新货品，更新时不修改库存"""
        now = datetime.now()
        values = {
            "name": name,
            "category": category,
            "spec": None,
            "remark": None,
            "min_order_qty": IMPORT_MIN_ORDER_QTY,
            "channel": None,
            "images": images,
            "updated_at": now,
        }
        stmt = sqlite_insert(Product).values(
            code=code, current_stock=0, created_at=now, **values
        )
        stmt = stmt.on_conflict_do_update(index_elements=[Product.code], set_=values)
        await self.db.execute(stmt)
