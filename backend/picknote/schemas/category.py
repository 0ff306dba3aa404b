"""商品分类Schema"""

from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field

from picknote.models.category import MAX_CATEGORY_LEVEL


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="分类名称")
    level: int = Field(..., ge=1, le=MAX_CATEGORY_LEVEL, description="层级（1-3）")
    parent_id: Optional[int] = Field(None, description="父分类ID")


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    parent_id: Optional[int] = None
    sort_order: Optional[int] = Field(None, ge=0)


class CategoryResponse(BaseModel):
    id: int
    name: str
    level: int
    parent_id: Optional[int] = None
    sort_order: int
    count: int = Field(0, description="直接关联的货品数量")
    created_at: datetime

    class Config:
        from_attributes = True


class CategoryTreeNode(CategoryResponse):
    """分类树节点"""
    children: List["CategoryTreeNode"] = []


class CategoryRename(BaseModel):
    """按名称重命名品类"""
    new_name: str = Field(..., description="新名称")
