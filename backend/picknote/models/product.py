"""
货品模型

current_stock 只由进货单的创建（增加）和删除（扣减）改变，
货品的新增/编辑接口不会直接修改库存。
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, Numeric
from sqlalchemy.orm import relationship
from picknote.db.base import Base

DEFAULT_CATEGORY = "其他"


class Product(Base):
    """货品

    唯一性约束：编码（店内码）全局唯一
    """
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)

    # 核心属性
    code = Column(String(50), unique=True, nullable=False, index=True, comment="货品编码（店内码）")
    name = Column(String(200), nullable=False, index=True, comment="货品名称")

    # 分类：自由文本品类 + 可选的分类树节点
    category = Column(String(50), nullable=False, default=DEFAULT_CATEGORY, index=True, comment="品类")
    category_id = Column(
        Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, comment="分类ID"
    )

    spec = Column(String(200), comment="规格")
    remark = Column(Text, comment="备注")
    channel = Column(String(50), comment="进货渠道")
    min_order_qty = Column(Integer, default=1, comment="起订量")
    unit = Column(String(20), comment="单位")
    price = Column(Numeric(12, 2), comment="参考售价")

    # 图片地址列表（有序）
    images = Column(JSON, nullable=False, default=list, comment="图片地址列表")

    # 当前库存（由进货单派生）
    current_stock = Column(Integer, nullable=False, default=0, comment="当前库存")

    # 审计字段
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    # 关系
    category_rel = relationship("Category", back_populates="products")
    purchase_items = relationship("PurchaseItem", back_populates="product")

    def __repr__(self):
        return f"<Product {self.code}: {self.name} stock={self.current_stock}>"
