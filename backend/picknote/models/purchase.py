"""
进货单模型

单号格式：PO + 年月日 + 3位序号，如 PO20250214007
单号由数据库唯一约束保证不重复，进货单创建后不再修改。
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, JSON, Numeric
from sqlalchemy.orm import relationship
from picknote.db.base import Base


class Purchase(Base):
    """进货单（单头）"""
    __tablename__ = "purchases"

    id = Column(Integer, primary_key=True, index=True)

    order_no = Column(String(20), unique=True, nullable=False, index=True, comment="进货单号")

    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False, index=True, comment="供应商ID")
    purchase_date = Column(DateTime, nullable=False, default=datetime.now, comment="进货日期")

    # 金额（总金额 = 明细小计之和，由服务端计算）
    total_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"), comment="货品总金额")
    shipping_fee = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"), comment="整单运费")

    remark = Column(Text, comment="备注")
    photos = Column(JSON, nullable=False, default=list, comment="单据照片地址列表")

    created_at = Column(DateTime, default=datetime.now)

    # 关系
    supplier = relationship("Supplier", back_populates="purchases")
    items = relationship(
        "PurchaseItem",
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseItem.id",
    )

    def __repr__(self):
        return f"<Purchase {self.order_no} ({len(self.items or [])} items)>"


class PurchaseItem(Base):
    """进货明细 - 进货单中的每一行货品"""
    __tablename__ = "purchase_items"

    id = Column(Integer, primary_key=True, index=True)

    purchase_id = Column(
        Integer, ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, index=True
    )
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)

    quantity = Column(Integer, nullable=False, comment="数量")
    unit_price = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"), comment="单位进价")
    # 小计 = 数量 × 单价（创建时计算并保存）
    subtotal = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"), comment="小计")

    created_at = Column(DateTime, default=datetime.now)

    purchase = relationship("Purchase", back_populates="items")
    product = relationship("Product", back_populates="purchase_items")

    def __repr__(self):
        return f"<PurchaseItem {self.product_id} x {self.quantity} @ {self.unit_price}>"

    def calculate(self):
        """计算小计"""
        self.subtotal = Decimal(self.quantity) * Decimal(str(self.unit_price))
