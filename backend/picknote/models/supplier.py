"""供应商模型"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from picknote.db.base import Base

DEFAULT_SUPPLIER_TYPE = "其他"


class Supplier(Base):
    """供应商 / 进货渠道"""
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(100), nullable=False, index=True, comment="名称")
    contact_name = Column(String(50), comment="联系人")
    phone = Column(String(30), comment="电话")
    address = Column(String(200), comment="地址")
    # 渠道类型，如：批发市场、1688、厂家直供
    type = Column(String(50), nullable=False, default=DEFAULT_SUPPLIER_TYPE, comment="渠道类型")
    remark = Column(Text, comment="备注")

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    purchases = relationship("Purchase", back_populates="supplier")

    def __repr__(self):
        return f"<Supplier {self.id}: {self.name}>"
