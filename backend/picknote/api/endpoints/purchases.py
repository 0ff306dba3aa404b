"""进货单API"""

from datetime import date, datetime, time, timedelta
from io import BytesIO
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from picknote.core.config import Settings
from picknote.core.deps import get_db, get_settings
from picknote.core.logging_config import get_logger
from picknote.models.purchase import Purchase, PurchaseItem
from picknote.models.supplier import Supplier
from picknote.schemas.purchase import (
    PurchaseCreate, PurchaseResponse, PurchaseItemResponse,
    PurchaseListItem, PurchaseListResponse,
)
from picknote.services.product_query import total_pages
from picknote.services.purchase_export import build_purchase_workbook, EXPORT_MEDIA_TYPE
from picknote.services.purchase_ledger import PurchaseLedger

router = APIRouter()
logger = get_logger(__name__)


def build_purchase_response(purchase: Purchase) -> PurchaseResponse:
    """构建进货单详情，purchase 需已加载 supplier 和 items.product"""
    items = []
    for item in purchase.items:
        product = item.product
        items.append(PurchaseItemResponse(
            id=item.id,
            product_id=item.product_id,
            quantity=item.quantity,
            unit_price=float(item.unit_price),
            subtotal=float(item.subtotal),
            product_code=product.code if product else "",
            product_name=product.name if product else "",
            product_category=product.category if product else "",
            product_spec=product.spec if product else None,
        ))

    return PurchaseResponse(
        id=purchase.id,
        order_no=purchase.order_no,
        supplier_id=purchase.supplier_id,
        supplier_name=purchase.supplier.name if purchase.supplier else "",
        purchase_date=purchase.purchase_date,
        total_amount=float(purchase.total_amount),
        shipping_fee=float(purchase.shipping_fee),
        remark=purchase.remark,
        photos=purchase.photos or [],
        created_at=purchase.created_at,
        items=items,
    )


@router.get("", response_model=PurchaseListResponse)
async def list_purchases(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_id: Optional[int] = Query(None, description="供应商筛选"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
) -> Any:
    """获取进货单列表（按进货日期倒序）"""
    count_query = select(func.count(Purchase.id))
    if supplier_id is not None:
        count_query = count_query.where(Purchase.supplier_id == supplier_id)
    total = (await db.execute(count_query)).scalar() or 0

    item_counts = (
        select(PurchaseItem.purchase_id, func.count(PurchaseItem.id).label("item_count"))
        .group_by(PurchaseItem.purchase_id)
        .subquery()
    )
    query = (
        select(Purchase, Supplier.name, item_counts.c.item_count)
        .outerjoin(Supplier, Purchase.supplier_id == Supplier.id)
        .outerjoin(item_counts, item_counts.c.purchase_id == Purchase.id)
    )
    if supplier_id is not None:
        query = query.where(Purchase.supplier_id == supplier_id)
    query = (
        query.order_by(Purchase.purchase_date.desc(), Purchase.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    result = await db.execute(query)
    data = [
        PurchaseListItem(
            id=p.id,
            order_no=p.order_no,
            supplier_id=p.supplier_id,
            supplier_name=supplier_name or "",
            purchase_date=p.purchase_date,
            total_amount=float(p.total_amount),
            shipping_fee=float(p.shipping_fee),
            remark=p.remark,
            item_count=item_count or 0,
            created_at=p.created_at,
        )
        for p, supplier_name, item_count in result.all()
    ]

    return PurchaseListResponse(
        data=data,
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages(total, limit),
    )


@router.get("/export")
async def export_purchases(
    *,
    db: AsyncSession = Depends(get_db),
    start_date: Optional[date] = Query(None, description="开始日期"),
    end_date: Optional[date] = Query(None, description="结束日期（含当天）"),
) -> Any:
    """导出进货明细 Excel"""
    query = select(Purchase).options(
        selectinload(Purchase.supplier),
        selectinload(Purchase.items).selectinload(PurchaseItem.product),
    )
    if start_date:
        query = query.where(Purchase.purchase_date >= datetime.combine(start_date, time.min))
    if end_date:
        query = query.where(
            Purchase.purchase_date < datetime.combine(end_date + timedelta(days=1), time.min)
        )
    query = query.order_by(Purchase.purchase_date.desc(), Purchase.id.desc())

    purchases = (await db.execute(query)).scalars().all()
    content = build_purchase_workbook(purchases)
    logger.info(f"导出进货明细: {len(purchases)} 张进货单")

    filename = f"purchases_{datetime.now().strftime('%Y%m%d')}.xlsx"
    return StreamingResponse(
        BytesIO(content),
        media_type=EXPORT_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/{purchase_id}", response_model=PurchaseResponse)
async def get_purchase(
    *,
    db: AsyncSession = Depends(get_db),
    purchase_id: int,
) -> Any:
    """获取进货单详情"""
    purchase = await PurchaseLedger(db).load(purchase_id)
    if not purchase:
        raise HTTPException(status_code=404, detail="进货单不存在")
    return build_purchase_response(purchase)


@router.post("", response_model=PurchaseResponse)
async def create_purchase(
    *,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    purchase_in: PurchaseCreate,
) -> Any:
    """
    创建进货单

    单号自动生成，明细货品的库存同步增加，全部成功或全部不生效
    """
    ledger = PurchaseLedger(db, max_retries=settings.ORDER_NO_MAX_RETRIES)
    purchase = await ledger.create(purchase_in)
    return build_purchase_response(purchase)


@router.delete("/{purchase_id}")
async def delete_purchase(
    *,
    db: AsyncSession = Depends(get_db),
    purchase_id: int,
) -> Any:
    """删除进货单并回滚库存"""
    purchase = await PurchaseLedger(db).delete(purchase_id)
    return {"message": f"进货单 {purchase.order_no} 已删除"}
