"""统计Schema"""
from typing import List, Optional
from pydantic import BaseModel
from datetime import datetime


class RecentProduct(BaseModel):
    id: int
    code: str
    name: str
    category: str
    current_stock: int
    images: List[str] = []


class RecentPurchase(BaseModel):
    id: int
    order_no: str
    supplier_name: str = ""
    purchase_date: datetime
    total_amount: float


class DashboardData(BaseModel):
    """首页概览"""
    product_count: int
    supplier_count: int
    purchase_count: int  # 本月新建的进货单
    total_stock_value: float
    recent_products: List[RecentProduct]
    recent_purchases: List[RecentPurchase]


class ProductRankItem(BaseModel):
    """货品进货排行"""
    id: int
    code: str
    name: str
    category: Optional[str] = None
    total_quantity: int
    total_amount: float
