from pydantic import BaseModel, Field
from typing import Any


class SaleReceipt(BaseModel):
    sale_identifier: str
    raw: dict[str, Any] = Field(default_factory=dict)


class CancelSaleIn(BaseModel):
    reason: str = Field(..., min_length=1)
