"""
进货明细导出
每个明细一行，整单运费只写在该单的第一行，避免汇总时重复计算
"""

from io import BytesIO
from typing import Iterable

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from picknote.models.purchase import Purchase

SHEET_TITLE = "进货明细汇总"
EXPORT_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

HEADERS = [
    "单号", "进货日期", "供应商/渠道", "货品编码", "货品名称", "品类",
    "单位进价", "数量", "金额小计", "整单运费", "备注",
]
COLUMN_WIDTHS = [16, 12, 18, 14, 28, 10, 10, 8, 12, 10, 24]

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(fill_type="solid", start_color="FFE9ECEF", end_color="FFE9ECEF")


def build_purchase_workbook(purchases: Iterable[Purchase]) -> bytes:
    """生成进货明细表，purchases 需已加载 supplier 和 items.product"""
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = SHEET_TITLE

    worksheet.append(HEADERS)
    for cell in worksheet[1]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL

    for column, width in enumerate(COLUMN_WIDTHS, start=1):
        worksheet.column_dimensions[get_column_letter(column)].width = width

    for purchase in purchases:
        supplier_name = purchase.supplier.name if purchase.supplier else ""
        purchase_date = purchase.purchase_date.strftime("%Y-%m-%d") if purchase.purchase_date else ""
        for index, item in enumerate(purchase.items):
            product = item.product
            worksheet.append([
                purchase.order_no,
                purchase_date,
                supplier_name,
                product.code if product else "",
                product.name if product else "",
                product.category if product else "",
                float(item.unit_price or 0),
                item.quantity,
                float(item.subtotal or 0),
                float(purchase.shipping_fee or 0) if index == 0 else None,
                purchase.remark or "",
            ])

    output = BytesIO()
    workbook.save(output)
    return output.getvalue()
