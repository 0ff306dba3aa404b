"""
货品 Excel 导入测试
"""
from io import BytesIO
from pathlib import Path
from zipfile import ZipFile

import pytest
from fastapi import HTTPException
from openpyxl import Workbook
from openpyxl.drawing.image import Image as SheetImage
from PIL import Image
from sqlalchemy import select, func

from conftest import add_product
from picknote.models import Product
from picknote.services import product_import
from picknote.services.product_import import ProductImporter, read_product_sheet


def png_bytes(color=(200, 30, 30)) -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (8, 8), color).save(buffer, format="PNG")
    return buffer.getvalue()


def build_workbook(rows, images=None) -> bytes:
    """rows: 从第3行开始的 (名称, 编码)；images: {单元格: png 数据}"""
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(["货品导入"])
    sheet.append(["名称", "图片", "店内码"])
    for name, code in rows:
        sheet.append([name, None, code])
    for cell, data in (images or {}).items():
        sheet.add_image(SheetImage(BytesIO(data)), cell)

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()


def replace_media(content: bytes, data: bytes) -> bytes:
    """把工作簿里唯一一张图片的内容换成 data（文件名不变）"""
    output = BytesIO()
    with ZipFile(BytesIO(content)) as source, ZipFile(output, "w") as target:
        for info in source.infolist():
            payload = source.read(info.filename)
            if info.filename.startswith("xl/media/"):
                payload = data
            target.writestr(info, payload)
    return output.getvalue()


async def product_by_code(session, code):
    result = await session.execute(
        select(Product).where(Product.code == code).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


class TestReadSheet:
    """表格解析"""

    def test_reads_rows_from_third_line(self):
        content = build_workbook([("红茶", "b3"), (None, None), ("手办", 1688)])
        rows = read_product_sheet(content)

        assert [(r.row_number, r.name, r.code) for r in rows] == [
            (3, "红茶", "b3"),
            (4, "", ""),
            (5, "手办", "1688"),
        ]

    def test_only_column_b_images_are_collected(self):
        content = build_workbook(
            [("红茶", "B3"), ("绿茶", "B4")],
            images={"B3": png_bytes(), "D4": png_bytes((0, 0, 255))},
        )
        rows = read_product_sheet(content)

        assert rows[0].image is not None
        assert rows[0].image.extension == "png"
        assert rows[0].image.data.startswith(b"\x89PNG")
        assert rows[1].image is None

    def test_image_bytes_are_kept_as_stored(self):
        # 表格里是 BMP 原图，不能被转成 PNG 再配上 .bmp 扩展名
        bmp = BytesIO()
        Image.new("RGB", (8, 8), (10, 120, 10)).save(bmp, format="BMP")
        content = replace_media(
            build_workbook([("红茶", "B3")], images={"B3": png_bytes()}),
            bmp.getvalue(),
        )

        image = read_product_sheet(content)[0].image

        assert image.extension == "bmp"
        assert image.data == bmp.getvalue()

    def test_unreadable_image_is_bad_request(self, monkeypatch):
        content = build_workbook([("红茶", "B3")], images={"B3": png_bytes()})

        def broken(image):
            raise OSError("cannot identify image file")

        monkeypatch.setattr(product_import, "_raw_image_bytes", broken)
        with pytest.raises(HTTPException) as exc_info:
            read_product_sheet(content)
        assert exc_info.value.status_code == 400

    def test_invalid_file(self):
        with pytest.raises(HTTPException) as exc_info:
            read_product_sheet(b"this is not a spreadsheet")
        assert exc_info.value.status_code == 400


class TestProductImporter:
    """导入流程"""

    @pytest.mark.asyncio
    async def test_import_new_products(self, session, storage):
        content = build_workbook(
            [
                ("陈皮普洱茶", "b3"),
                (None, None),
                ("乐高积木", None),
                (None, "C12"),
            ],
            images={"B3": png_bytes()},
        )

        result = await ProductImporter(session, storage).import_workbook(content)

        assert result.imported_count == 3
        assert result.errors == []
        assert result.message == "导入完成，共处理 3 个货品"

        tea = await product_by_code(session, "B03")
        assert tea.name == "陈皮普洱茶"
        assert tea.category == "茶叶"
        assert tea.current_stock == 0
        assert len(tea.images) == 1
        assert tea.images[0].startswith("/uploads/products/B03_")
        assert tea.images[0].endswith(".png")
        saved = Path(storage.directory) / tea.images[0].rsplit("/", 1)[1]
        assert saved.read_bytes().startswith(b"\x89PNG")

        toy = (await session.execute(
            select(Product).where(Product.name == "乐高积木")
        )).scalar_one()
        assert toy.code.startswith("AUTO_")
        assert toy.code.endswith("_5")
        assert toy.category == "玩具"

        unnamed = await product_by_code(session, "C12")
        assert unnamed.name == "C12"
        assert unnamed.category == "其他"
        assert unnamed.images == []

    @pytest.mark.asyncio
    async def test_reimport_updates_but_keeps_stock(self, session, storage):
        await add_product(
            session, "B03", name="旧名称", stock=7,
            spec="500g", remark="老备注", images=["/uploads/products/old.png"],
        )

        content = build_workbook([("西湖龙井", "B3")])
        result = await ProductImporter(session, storage).import_workbook(content)

        assert result.imported_count == 1
        product = await product_by_code(session, "B03")
        assert product.name == "西湖龙井"
        assert product.category == "茶叶"
        assert product.current_stock == 7
        assert product.spec is None
        assert product.remark is None
        assert product.images == []
        assert (await session.execute(select(func.count(Product.id)))).scalar() == 1

    @pytest.mark.asyncio
    async def test_import_is_idempotent(self, session, storage):
        content = build_workbook([("红茶", "A1"), ("白酒", "A2")])
        importer = ProductImporter(session, storage)

        await importer.import_workbook(content)
        await importer.import_workbook(content)

        assert (await session.execute(select(func.count(Product.id)))).scalar() == 2

    @pytest.mark.asyncio
    async def test_failed_row_does_not_stop_later_rows(self, session, storage, monkeypatch):
        content = build_workbook(
            [("红茶", "A1"), ("绿茶", "A2"), ("白茶", "A3")],
            images={"B4": png_bytes()},
        )

        def broken_write(data, suggested_name):
            raise OSError("磁盘已满")

        monkeypatch.setattr(storage, "write", broken_write)
        result = await ProductImporter(session, storage).import_workbook(content)

        assert result.imported_count == 2
        assert len(result.errors) == 1
        assert result.errors[0].row == 4
        assert result.errors[0].code == "A2"
        assert await product_by_code(session, "A1") is not None
        assert await product_by_code(session, "A2") is None
        assert await product_by_code(session, "A3") is not None

    @pytest.mark.asyncio
    async def test_invalid_workbook_writes_nothing(self, session, storage):
        with pytest.raises(HTTPException) as exc_info:
            await ProductImporter(session, storage).import_workbook(b"PK\x03\x04 broken")
        assert exc_info.value.status_code == 400
        assert (await session.execute(select(func.count(Product.id)))).scalar() == 0
