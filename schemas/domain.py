from pydantic import BaseModel, Field
from typing import Optional


class DomainRequest(BaseModel):
    domain: str = Field(min_length=1, max_length=255)


class DomainLinkRequest(BaseModel):
    store_id: int
    domain: str = Field(min_length=1, max_length=255)
    verified: bool = False
