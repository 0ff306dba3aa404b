"""商品分类API

两套品类并存：
- 分类树：categories 表，最多三级，货品通过 category_id 关联
- 品类名称：货品上的 category 文本字段，按名称整体重命名或删除
"""

from typing import Any, Dict, List, Optional, Set

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select, func, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from picknote.core.deps import get_db
from picknote.core.logging_config import get_logger
from picknote.models.category import Category
from picknote.models.product import Product, DEFAULT_CATEGORY
from picknote.schemas.category import (
    CategoryCreate, CategoryUpdate, CategoryResponse, CategoryTreeNode, CategoryRename
)

router = APIRouter()
logger = get_logger(__name__)


async def _product_counts(db: AsyncSession) -> Dict[int, int]:
    """每个分类直接关联的货品数"""
    result = await db.execute(
        select(Product.category_id, func.count(Product.id))
        .where(Product.category_id.isnot(None))
        .group_by(Product.category_id)
    )
    return {category_id: count for category_id, count in result.all()}


async def _descendant_ids(db: AsyncSession, category_id: int) -> Set[int]:
    """所有下级分类的ID（不含自身）"""
    result = await db.execute(select(Category.id, Category.parent_id))
    children: Dict[int, List[int]] = {}
    for cid, parent_id in result.all():
        children.setdefault(parent_id, []).append(cid)

    found: Set[int] = set()
    pending = list(children.get(category_id, []))
    while pending:
        cid = pending.pop()
        if cid in found:
            continue
        found.add(cid)
        pending.extend(children.get(cid, []))
    return found


async def _check_parent(db: AsyncSession, level: int, parent_id: Optional[int]) -> None:
    """校验父分类：一级分类不能有父分类，其余层级的父分类必须正好高一级"""
    if level == 1:
        if parent_id is not None:
            raise HTTPException(status_code=400, detail="一级分类不能指定父分类")
        return

    if parent_id is None:
        raise HTTPException(status_code=400, detail=f"{level}级分类必须指定父分类")

    parent = await db.get(Category, parent_id)
    if not parent:
        raise HTTPException(status_code=400, detail="父分类不存在")
    if parent.level != level - 1:
        raise HTTPException(status_code=400, detail=f"父分类层级不匹配（应为 {level - 1} 级）")


async def _check_sibling_name(
    db: AsyncSession, name: str, parent_id: Optional[int], exclude_id: Optional[int] = None
) -> None:
    query = select(func.count(Category.id)).where(
        Category.name == name,
        Category.parent_id.is_(None) if parent_id is None else Category.parent_id == parent_id,
    )
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    if ((await db.execute(query)).scalar() or 0) > 0:
        raise HTTPException(status_code=400, detail="同级分类中已存在相同名称")


def _to_response(category: Category, count: int = 0) -> CategoryResponse:
    return CategoryResponse(
        id=category.id,
        name=category.name,
        level=category.level,
        parent_id=category.parent_id,
        sort_order=category.sort_order,
        count=count,
        created_at=category.created_at,
    )


@router.get("")
async def list_categories(
    *,
    db: AsyncSession = Depends(get_db),
    format: str = Query("tree", description="tree 树形 / flat 扁平"),
) -> Any:
    """获取分类（默认树形）"""
    if format not in ("tree", "flat"):
        raise HTTPException(status_code=400, detail=f"不支持的格式: {format}")

    result = await db.execute(
        select(Category).order_by(Category.level, Category.sort_order, Category.id)
    )
    categories = result.scalars().all()
    counts = await _product_counts(db)

    if format == "flat":
        return [_to_response(c, counts.get(c.id, 0)) for c in categories]

    # 构建树
    nodes = {
        c.id: CategoryTreeNode(**_to_response(c, counts.get(c.id, 0)).model_dump(), children=[])
        for c in categories
    }
    roots: List[CategoryTreeNode] = []
    for c in categories:
        node = nodes[c.id]
        if c.parent_id is None:
            roots.append(node)
        elif c.parent_id in nodes:
            nodes[c.parent_id].children.append(node)
    return roots


@router.post("", response_model=CategoryResponse)
async def create_category(
    *,
    db: AsyncSession = Depends(get_db),
    category_in: CategoryCreate,
) -> Any:
    """创建分类（排在同级最后）"""
    name = category_in.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="分类名称不能为空")

    await _check_parent(db, category_in.level, category_in.parent_id)
    await _check_sibling_name(db, name, category_in.parent_id)

    max_order = (await db.execute(
        select(func.max(Category.sort_order)).where(
            Category.level == category_in.level,
            Category.parent_id.is_(None) if category_in.parent_id is None
            else Category.parent_id == category_in.parent_id,
        )
    )).scalar()

    category = Category(
        name=name,
        level=category_in.level,
        parent_id=category_in.parent_id,
        sort_order=(max_order or 0) + 1,
    )
    db.add(category)
    await db.commit()
    await db.refresh(category)

    logger.info(f"创建分类 {category.name}（{category.level}级）")
    return _to_response(category)


@router.put("/names/{name}")
async def rename_category_name(
    *,
    db: AsyncSession = Depends(get_db),
    name: str,
    rename_in: CategoryRename,
) -> Any:
    """重命名品类，同步更新所有使用该名称的货品"""
    new_name = (rename_in.new_name or "").strip()
    if not new_name:
        raise HTTPException(status_code=400, detail="新名称不能为空")

    result = await db.execute(
        update(Product).where(Product.category == name).values(category=new_name)
    )
    await db.commit()

    count = result.rowcount
    logger.info(f"品类 {name} 重命名为 {new_name}，更新 {count} 个货品")
    return {"count": count, "message": f"已同步更新 {count} 项货品的分类"}


@router.delete("/names/{name}")
async def delete_category_name(
    *,
    db: AsyncSession = Depends(get_db),
    name: str,
) -> Any:
    """删除品类，原品类的货品归入「其他」"""
    result = await db.execute(
        update(Product).where(Product.category == name).values(category=DEFAULT_CATEGORY)
    )
    await db.commit()

    count = result.rowcount
    logger.info(f"删除品类 {name}，{count} 个货品归入 {DEFAULT_CATEGORY}")
    return {"count": count, "message": f"已删除分类，{count} 项货品已归类至 \"{DEFAULT_CATEGORY}\""}


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    *,
    db: AsyncSession = Depends(get_db),
    category_id: int,
    category_in: CategoryUpdate,
) -> Any:
    """更新分类名称、父分类或排序"""
    category = await db.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="分类不存在")

    update_data = category_in.model_dump(exclude_unset=True)
    parent_id = update_data.get("parent_id", category.parent_id)

    if "parent_id" in update_data and parent_id != category.parent_id:
        await _check_parent(db, category.level, parent_id)
        if parent_id is not None and parent_id in await _descendant_ids(db, category_id):
            raise HTTPException(status_code=400, detail="不能将分类移动到其子分类下")
        category.parent_id = parent_id

    if update_data.get("name") is not None:
        name = update_data["name"].strip()
        if not name:
            raise HTTPException(status_code=400, detail="分类名称不能为空")
        await _check_sibling_name(db, name, parent_id, exclude_id=category_id)
        category.name = name

    if update_data.get("sort_order") is not None:
        category.sort_order = update_data["sort_order"]

    await db.commit()
    await db.refresh(category)

    counts = await _product_counts(db)
    return _to_response(category, counts.get(category.id, 0))


@router.delete("/{category_id}")
async def delete_category(
    *,
    db: AsyncSession = Depends(get_db),
    category_id: int,
) -> Any:
    """删除分类及其所有下级分类，关联货品解除分类"""
    category = await db.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="分类不存在")

    name = category.name
    ids = {category_id} | await _descendant_ids(db, category_id)

    detached = await db.execute(
        update(Product).where(Product.category_id.in_(ids)).values(category_id=None)
    )
    await db.execute(delete(Category).where(Category.id.in_(ids)))
    await db.commit()

    logger.info(
        f"删除分类 {name} 及 {len(ids) - 1} 个下级分类，解除 {detached.rowcount} 个货品的关联"
    )
    return {"message": f"分类 \"{name}\" 已删除", "deleted_ids": sorted(ids)}
