"""统计API"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from picknote.core.deps import get_db
from picknote.models.product import Product
from picknote.models.purchase import Purchase, PurchaseItem
from picknote.models.supplier import Supplier
from picknote.schemas.stats import DashboardData, RecentProduct, RecentPurchase, ProductRankItem

router = APIRouter()


async def _latest_unit_prices(db: AsyncSession) -> Dict[int, Decimal]:
    """每个货品最近一次进货的单价"""
    result = await db.execute(
        select(PurchaseItem.product_id, PurchaseItem.unit_price)
        .order_by(PurchaseItem.created_at.desc(), PurchaseItem.id.desc())
    )
    prices: Dict[int, Decimal] = {}
    for product_id, unit_price in result.all():
        prices.setdefault(product_id, Decimal(str(unit_price or 0)))
    return prices


@router.get("", response_model=DashboardData)
async def get_dashboard(*, db: AsyncSession = Depends(get_db)) -> Any:
    """首页概览"""
    product_count = (await db.execute(select(func.count(Product.id)))).scalar() or 0
    supplier_count = (await db.execute(select(func.count(Supplier.id)))).scalar() or 0

    month_start = datetime.now().replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    purchase_count = (await db.execute(
        select(func.count(Purchase.id)).where(Purchase.created_at >= month_start)
    )).scalar() or 0

    # 总货值 = Σ 当前库存 × 最近进货单价
    prices = await _latest_unit_prices(db)
    stocks = await db.execute(select(Product.id, Product.current_stock))
    total_stock_value = sum(
        (Decimal(stock or 0) * prices.get(pid, Decimal("0")) for pid, stock in stocks.all()),
        Decimal("0"),
    )

    recent_products = (await db.execute(
        select(Product).order_by(Product.created_at.desc(), Product.id.desc()).limit(5)
    )).scalars().all()

    recent_purchases = (await db.execute(
        select(Purchase, Supplier.name)
        .outerjoin(Supplier, Purchase.supplier_id == Supplier.id)
        .order_by(Purchase.purchase_date.desc(), Purchase.id.desc())
        .limit(3)
    )).all()

    return DashboardData(
        product_count=product_count,
        supplier_count=supplier_count,
        purchase_count=purchase_count,
        total_stock_value=float(total_stock_value),
        recent_products=[
            RecentProduct(
                id=p.id,
                code=p.code,
                name=p.name,
                category=p.category,
                current_stock=p.current_stock,
                images=p.images or [],
            )
            for p in recent_products
        ],
        recent_purchases=[
            RecentPurchase(
                id=p.id,
                order_no=p.order_no,
                supplier_name=supplier_name or "",
                purchase_date=p.purchase_date,
                total_amount=float(p.total_amount),
            )
            for p, supplier_name in recent_purchases
        ],
    )


@router.get("/products", response_model=List[ProductRankItem])
async def get_product_ranking(
    *,
    db: AsyncSession = Depends(get_db),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("quantity", pattern="^(quantity|amount)$", description="quantity 数量 / amount 金额"),
) -> Any:
    """货品进货排行"""
    total_quantity = func.sum(PurchaseItem.quantity).label("total_quantity")
    total_amount = func.sum(PurchaseItem.subtotal).label("total_amount")
    order_column = total_quantity if sort_by == "quantity" else total_amount

    result = await db.execute(
        select(
            PurchaseItem.product_id,
            Product.code,
            Product.name,
            Product.category,
            total_quantity,
            total_amount,
        )
        .select_from(PurchaseItem)
        .outerjoin(Product, PurchaseItem.product_id == Product.id)
        .group_by(PurchaseItem.product_id, Product.code, Product.name, Product.category)
        .order_by(order_column.desc(), PurchaseItem.product_id)
        .limit(limit)
    )

    return [
        ProductRankItem(
            id=row.product_id,
            code=row.code or "未知",
            name=row.name or "未知货品",
            category=row.category or "未分类",
            total_quantity=row.total_quantity or 0,
            total_amount=float(row.total_amount or 0),
        )
        for row in result.all()
    ]
