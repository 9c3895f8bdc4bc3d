from pydantic import BaseModel, Field
from typing import Dict, List, Optional


class ProductCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    price: float = Field(ge=0)
    description: Optional[str] = None
    compare_at_price: Optional[float] = Field(default=None, ge=0)
    images: List[str] = []
    category_id: Optional[int] = None
    sku: Optional[str] = None
    stock: Optional[int] = Field(default=None, ge=0)
    is_available: bool = True


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    price: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None
    compare_at_price: Optional[float] = Field(default=None, ge=0)
    images: Optional[List[str]] = None
    category_id: Optional[int] = None
    sku: Optional[str] = None
    stock: Optional[int] = Field(default=None, ge=0)
    is_available: Optional[bool] = None


class ProductOut(BaseModel):
    id: int
    name: str
    price: float
    description: Optional[str] = None
    compare_at_price: Optional[float] = None
    images: Optional[List[str]] = None
    category_id: Optional[int] = None
    sku: Optional[str] = None
    stock: Optional[int] = None
    is_available: bool

    class Config:
        from_attributes = True


class VariantCreate(BaseModel):
    selections: Dict[str, str]
    sku: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)


class VariantOut(BaseModel):
    id: int
    product_id: int
    selections: Dict[str, str]
    sku: Optional[str] = None
    price: Optional[float] = None
    stock: int

    class Config:
        from_attributes = True
