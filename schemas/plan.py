from pydantic import BaseModel, Field
from typing import List, Optional


class PlanCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    price_monthly: float = Field(default=0, ge=0)
    price_yearly: Optional[float] = Field(default=None, ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    product_limit: Optional[int] = Field(default=None, ge=-1)
    variant_limit: Optional[int] = Field(default=None, ge=-1)
    storage_mb: Optional[int] = Field(default=None, ge=-1)
    features: List[str] = []
    is_active: bool = True


class PlanUpdate(BaseModel):
    # Plan identity (name) is immutable once created
    description: Optional[str] = None
    price_monthly: Optional[float] = Field(default=None, ge=0)
    price_yearly: Optional[float] = Field(default=None, ge=0)
    product_limit: Optional[int] = Field(default=None, ge=-1)
    variant_limit: Optional[int] = Field(default=None, ge=-1)
    storage_mb: Optional[int] = Field(default=None, ge=-1)
    features: Optional[List[str]] = None
    is_active: Optional[bool] = None


class PlanOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price_monthly: float
    price_yearly: Optional[float] = None
    currency: str
    product_limit: Optional[int] = None
    variant_limit: Optional[int] = None
    storage_mb: Optional[int] = None
    features: Optional[List[str]] = None
    is_active: bool

    class Config:
        from_attributes = True
