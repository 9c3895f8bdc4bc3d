from pydantic import BaseModel
from typing import Dict, List, Optional


class LimitCheckOut(BaseModel):
    allowed: bool
    remaining: Optional[int] = None


class EntitlementsOut(BaseModel):
    plan_id: Optional[int] = None
    plan_name: Optional[str] = None
    period: Optional[str] = None
    product_limit: Optional[int] = None
    variant_limit: Optional[int] = None
    storage_mb: Optional[int] = None
    features: List[str] = []
    usage: Dict[str, int] = {}
    limits: Dict[str, LimitCheckOut] = {}
