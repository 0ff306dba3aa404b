"""进货单Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime


# ===== 明细 =====
class PurchaseItemCreate(BaseModel):
    """创建明细"""
    product_id: int = Field(..., gt=0, description="货品ID")
    quantity: int = Field(..., ge=1, description="数量")
    unit_price: float = Field(..., ge=0, description="单位进价")


class PurchaseItemResponse(BaseModel):
    """明细响应"""
    id: int
    product_id: int
    quantity: int
    unit_price: float
    subtotal: float
    product_code: str = ""
    product_name: str = ""
    product_category: str = ""
    product_spec: Optional[str] = None


# ===== 进货单 =====
class PurchaseCreate(BaseModel):
    """创建进货单"""
    supplier_id: int = Field(..., gt=0, description="供应商ID")
    purchase_date: datetime = Field(..., description="进货日期")
    # 前端计算的总金额，仅用于核对，服务端以明细小计之和为准
    total_amount: Optional[float] = Field(None, ge=0, description="总金额")
    shipping_fee: float = Field(default=0, ge=0, description="整单运费")
    remark: Optional[str] = Field(None, description="备注")
    photos: List[str] = Field(default_factory=list, description="单据照片")
    items: List[PurchaseItemCreate] = Field(..., min_length=1, description="进货明细")


class PurchaseResponse(BaseModel):
    """进货单详情"""
    id: int
    order_no: str
    supplier_id: int
    supplier_name: str = ""
    purchase_date: datetime
    total_amount: float
    shipping_fee: float
    remark: Optional[str] = None
    photos: List[str] = Field(default_factory=list)
    created_at: datetime
    items: List[PurchaseItemResponse] = Field(default_factory=list)


class PurchaseListItem(BaseModel):
    """进货单列表行"""
    id: int
    order_no: str
    supplier_id: int
    supplier_name: str = ""
    purchase_date: datetime
    total_amount: float
    shipping_fee: float
    remark: Optional[str] = None
    item_count: int = 0
    created_at: datetime


class PurchaseListResponse(BaseModel):
    data: List[PurchaseListItem]
    total: int
    page: int
    limit: int
    total_pages: int
