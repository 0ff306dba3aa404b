# models包初始化文件

from picknote.models.category import Category
from picknote.models.supplier import Supplier
from picknote.models.product import Product
from picknote.models.purchase import Purchase, PurchaseItem

__all__ = [
    "Category",
    "Supplier",
    "Product",
    "Purchase",
    "PurchaseItem",
]
