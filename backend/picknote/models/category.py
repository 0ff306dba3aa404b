"""商品分类模型 - 最多三级的树形结构"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from picknote.db.base import Base

MAX_CATEGORY_LEVEL = 3


class Category(Base):
    """商品分类

    层级规则：
    - 一级分类没有父分类
    - 二级、三级分类的父分类必须恰好高一级
    如：
    - 食品
      - 补品
        - 海参
    """
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, comment="分类名称")
    level = Column(Integer, nullable=False, default=1, comment="层级（1=一级分类）")
    parent_id = Column(
        Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=True, index=True, comment="父分类ID"
    )
    sort_order = Column(Integer, nullable=False, default=0, comment="同级排序")

    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    # 关系
    parent = relationship("Category", remote_side=[id], back_populates="children")
    children = relationship("Category", back_populates="parent")
    products = relationship("Product", back_populates="category_rel")

    def __repr__(self):
        return f"<Category {self.id}: {self.name} (L{self.level})>"
