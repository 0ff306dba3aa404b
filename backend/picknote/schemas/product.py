"""货品Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime

from picknote.models.product import DEFAULT_CATEGORY


class ProductBase(BaseModel):
    """货品基础字段"""
    name: str = Field(..., min_length=1, max_length=200, description="货品名称")
    category: str = Field(default=DEFAULT_CATEGORY, max_length=50, description="品类")
    category_id: Optional[int] = Field(None, description="分类ID")
    spec: Optional[str] = Field(None, max_length=200, description="规格")
    remark: Optional[str] = Field(None, description="备注")
    channel: Optional[str] = Field(None, max_length=50, description="进货渠道")
    min_order_qty: int = Field(default=1, ge=0, description="起订量")
    unit: Optional[str] = Field(None, max_length=20, description="单位")
    price: Optional[float] = Field(None, ge=0, description="参考售价")
    images: List[str] = Field(default_factory=list, description="图片地址列表")


class ProductCreate(ProductBase):
    """创建货品（库存固定从0开始，由进货单累加）"""
    code: str = Field(..., min_length=1, max_length=50, description="货品编码")


class ProductUpdate(BaseModel):
    """更新货品（不允许直接修改库存）"""
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[str] = Field(None, max_length=50)
    category_id: Optional[int] = None
    spec: Optional[str] = None
    remark: Optional[str] = None
    channel: Optional[str] = None
    min_order_qty: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    images: Optional[List[str]] = None


class ProductResponse(ProductBase):
    """货品响应"""
    id: int
    code: str
    current_stock: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ProductPurchaseRecord(BaseModel):
    """货品的进货记录"""
    purchase_id: int
    order_no: str
    purchase_date: datetime
    supplier_name: str = ""
    quantity: int
    unit_price: float
    subtotal: float


class ProductDetailResponse(ProductResponse):
    """货品详情（含最近进货记录）"""
    recent_purchases: List[ProductPurchaseRecord] = Field(default_factory=list)


class ProductListResponse(BaseModel):
    """货品列表响应"""
    data: List[ProductResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class ProductImportError(BaseModel):
    """导入失败的行"""
    row: int
    code: str = ""
    message: str


class ProductImportResponse(BaseModel):
    """Excel 导入结果"""
    imported_count: int
    errors: List[ProductImportError] = Field(default_factory=list)
    message: str = ""
