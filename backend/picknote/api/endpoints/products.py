"""货品管理API"""

from dataclasses import asdict
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from picknote.core.deps import get_db, get_storage
from picknote.core.logging_config import get_logger
from picknote.models.category import Category
from picknote.models.product import Product
from picknote.models.purchase import Purchase, PurchaseItem
from picknote.models.supplier import Supplier
from picknote.schemas.product import (
    ProductCreate, ProductUpdate, ProductResponse, ProductDetailResponse,
    ProductListResponse, ProductPurchaseRecord, ProductImportResponse,
    ProductImportError,
)
from picknote.services.product_import import ProductImporter
from picknote.services.product_query import ProductQuery, SEARCH_SCOPES
from picknote.services.storage import LocalImageStorage

router = APIRouter()
logger = get_logger(__name__)

RECENT_PURCHASE_LIMIT = 10


async def _find_code_owner(db: AsyncSession, code: str, exclude_id: Optional[int] = None) -> Optional[Product]:
    query = select(Product).where(Product.code == code)
    if exclude_id is not None:
        query = query.where(Product.id != exclude_id)
    return (await db.execute(query)).scalars().first()


def _code_conflict(code: str, owner: Product) -> HTTPException:
    return HTTPException(status_code=409, detail=f"货品编码 {code} 已被「{owner.name}」使用")


async def _ensure_code_available(db: AsyncSession, code: str, exclude_id: Optional[int] = None) -> None:
    """编码已被其他货品使用时报 409"""
    owner = await _find_code_owner(db, code, exclude_id)
    if owner:
        raise _code_conflict(code, owner)


async def _commit_product(db: AsyncSession, code: str, exclude_id: Optional[int] = None) -> None:
    """提交货品修改；并发请求先占用了同一编码时，唯一约束报错转为 409"""
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        owner = await _find_code_owner(db, code, exclude_id)
        if owner:
            raise _code_conflict(code, owner)
        raise


async def _ensure_category_exists(db: AsyncSession, category_id: Optional[int]) -> None:
    if category_id is not None and not await db.get(Category, category_id):
        raise HTTPException(status_code=404, detail=f"分类ID {category_id} 不存在")


@router.get("", response_model=ProductListResponse)
async def list_products(
    *,
    db: AsyncSession = Depends(get_db),
    category: Optional[str] = Query(None, description="品类筛选，all/全部 表示不筛选"),
    search: Optional[str] = Query(None, description="搜索"),
    scope: str = Query("all", description="搜索范围: all/name/code"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
) -> Any:
    """获取货品列表（按编码自然排序）"""
    if scope not in SEARCH_SCOPES:
        raise HTTPException(status_code=400, detail=f"不支持的搜索范围: {scope}")

    result = await ProductQuery(db).list(
        category=category, search=search, scope=scope, page=page, limit=limit
    )
    return ProductListResponse(
        data=[ProductResponse.model_validate(p) for p in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get("/categories", response_model=List[str])
async def list_product_categories(*, db: AsyncSession = Depends(get_db)) -> Any:
    """获取货品已使用的品类名称"""
    result = await db.execute(
        select(Product.category).distinct().order_by(Product.category)
    )
    return [c for c in result.scalars().all() if c]


@router.post("/import", response_model=ProductImportResponse)
async def import_products(
    *,
    db: AsyncSession = Depends(get_db),
    storage: LocalImageStorage = Depends(get_storage),
    file: UploadFile = File(..., description="Excel 文件"),
) -> Any:
    """
    从 Excel 导入货品

    A列名称，B列图片，C列店内码，从第3行开始读取
    """
    content = await file.read()
    logger.info(f"开始导入货品: {file.filename} ({len(content)} bytes)")

    result = await ProductImporter(db, storage).import_workbook(content)
    return ProductImportResponse(
        imported_count=result.imported_count,
        errors=[ProductImportError(**asdict(e)) for e in result.errors],
        message=result.message,
    )


@router.post("", response_model=ProductResponse)
async def create_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_in: ProductCreate,
) -> Any:
    """创建货品（库存从0开始）"""
    code = product_in.code.strip()
    await _ensure_code_available(db, code)
    await _ensure_category_exists(db, product_in.category_id)

    product = Product(**product_in.model_dump(exclude={"code"}), code=code, current_stock=0)
    db.add(product)
    await _commit_product(db, code)
    await db.refresh(product)

    logger.info(f"创建货品 {product.code} {product.name}")
    return product


@router.get("/{product_id}", response_model=ProductDetailResponse)
async def get_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_id: int,
) -> Any:
    """获取货品详情（含最近进货记录）"""
    product = await db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="货品不存在")

    result = await db.execute(
        select(PurchaseItem, Purchase, Supplier.name)
        .join(Purchase, PurchaseItem.purchase_id == Purchase.id)
        .outerjoin(Supplier, Purchase.supplier_id == Supplier.id)
        .where(PurchaseItem.product_id == product_id)
        .order_by(Purchase.purchase_date.desc(), PurchaseItem.id.desc())
        .limit(RECENT_PURCHASE_LIMIT)
    )
    records = [
        ProductPurchaseRecord(
            purchase_id=purchase.id,
            order_no=purchase.order_no,
            purchase_date=purchase.purchase_date,
            supplier_name=supplier_name or "",
            quantity=item.quantity,
            unit_price=float(item.unit_price),
            subtotal=float(item.subtotal),
        )
        for item, purchase, supplier_name in result.all()
    ]

    detail = ProductDetailResponse.model_validate(product)
    detail.recent_purchases = records
    return detail


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_id: int,
    product_in: ProductUpdate,
) -> Any:
    """更新货品（库存只能通过进货单变动）"""
    product = await db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="货品不存在")

    update_data = product_in.model_dump(exclude_unset=True)
    if update_data.get("code"):
        update_data["code"] = update_data["code"].strip()
        await _ensure_code_available(db, update_data["code"], exclude_id=product_id)
    if "category_id" in update_data:
        await _ensure_category_exists(db, update_data["category_id"])

    for field, value in update_data.items():
        if value is None and field in ("code", "name", "category", "images"):
            continue
        setattr(product, field, value)

    await _commit_product(db, product.code, exclude_id=product_id)
    await db.refresh(product)
    return product


@router.delete("/{product_id}")
async def delete_product(
    *,
    db: AsyncSession = Depends(get_db),
    product_id: int,
) -> Any:
    """删除货品（已有进货记录的货品不能删除）"""
    product = await db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="货品不存在")

    used = (await db.execute(
        select(func.count(PurchaseItem.id)).where(PurchaseItem.product_id == product_id)
    )).scalar() or 0
    if used > 0:
        raise HTTPException(status_code=409, detail=f"货品 {product.code} 已有 {used} 条进货记录，不能删除")

    await db.delete(product)
    await db.commit()

    logger.info(f"删除货品 {product.code}")
    return {"message": "删除成功"}
