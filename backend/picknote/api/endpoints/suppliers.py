"""供应商管理API"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from picknote.core.deps import get_db
from picknote.core.logging_config import get_logger
from picknote.models.purchase import Purchase
from picknote.models.supplier import Supplier
from picknote.schemas.supplier import (
    SupplierCreate, SupplierUpdate, SupplierResponse, SupplierListResponse
)

router = APIRouter()
logger = get_logger(__name__)


async def _get_supplier_or_404(db: AsyncSession, supplier_id: int) -> Supplier:
    supplier = await db.get(Supplier, supplier_id)
    if not supplier:
        raise HTTPException(status_code=404, detail="供应商不存在")
    return supplier


@router.get("", response_model=SupplierListResponse)
async def list_suppliers(*, db: AsyncSession = Depends(get_db)) -> Any:
    """获取供应商列表（新建的在前）"""
    result = await db.execute(
        select(Supplier).order_by(Supplier.created_at.desc(), Supplier.id.desc())
    )
    suppliers = result.scalars().all()
    return SupplierListResponse(
        data=[SupplierResponse.model_validate(s) for s in suppliers],
        total=len(suppliers),
    )


@router.post("", response_model=SupplierResponse)
async def create_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_in: SupplierCreate,
) -> Any:
    """创建供应商"""
    supplier = Supplier(**supplier_in.model_dump())
    db.add(supplier)
    await db.commit()
    await db.refresh(supplier)
    logger.info(f"创建供应商 {supplier.name}")
    return supplier


@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_id: int,
) -> Any:
    return await _get_supplier_or_404(db, supplier_id)


@router.put("/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_id: int,
    supplier_in: SupplierUpdate,
) -> Any:
    """更新供应商"""
    supplier = await _get_supplier_or_404(db, supplier_id)

    for field, value in supplier_in.model_dump(exclude_unset=True).items():
        if value is None and field in ("name", "type"):
            continue
        setattr(supplier, field, value)

    await db.commit()
    await db.refresh(supplier)
    return supplier


@router.delete("/{supplier_id}")
async def delete_supplier(
    *,
    db: AsyncSession = Depends(get_db),
    supplier_id: int,
) -> Any:
    """删除供应商（已有进货单的供应商不能删除）"""
    supplier = await _get_supplier_or_404(db, supplier_id)

    used = (await db.execute(
        select(func.count(Purchase.id)).where(Purchase.supplier_id == supplier_id)
    )).scalar() or 0
    if used > 0:
        raise HTTPException(status_code=409, detail=f"供应商「{supplier.name}」已有 {used} 张进货单，不能删除")

    await db.delete(supplier)
    await db.commit()
    logger.info(f"删除供应商 {supplier.name}")
    return {"message": "删除成功"}
