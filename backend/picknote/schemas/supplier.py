"""供应商Schema"""
from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime

from picknote.models.supplier import DEFAULT_SUPPLIER_TYPE


class SupplierBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="供应商名称")
    contact_name: Optional[str] = Field(None, max_length=50, description="联系人")
    phone: Optional[str] = Field(None, max_length=30, description="电话")
    address: Optional[str] = Field(None, max_length=200, description="地址")
    type: str = Field(default=DEFAULT_SUPPLIER_TYPE, min_length=1, max_length=50, description="渠道类型")
    remark: Optional[str] = Field(None, description="备注")


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    type: Optional[str] = Field(None, min_length=1, max_length=50)
    remark: Optional[str] = None


class SupplierResponse(SupplierBase):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SupplierListResponse(BaseModel):
    data: List[SupplierResponse]
    total: int
