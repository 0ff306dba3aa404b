"""API 路由聚合 - 单机版（无认证）"""
from fastapi import APIRouter

from picknote.api.endpoints import (
    products, suppliers, categories, purchases, upload, stats
)

api_router = APIRouter()

# 基础资料
api_router.include_router(products.router, prefix="/products", tags=["货品管理"])
api_router.include_router(suppliers.router, prefix="/suppliers", tags=["供应商管理"])
api_router.include_router(categories.router, prefix="/categories", tags=["商品分类"])

# 进货业务
api_router.include_router(purchases.router, prefix="/purchases", tags=["进货单管理"])
api_router.include_router(upload.router, prefix="/upload", tags=["图片上传"])

# 统计
api_router.include_router(stats.router, prefix="/stats", tags=["统计"])
