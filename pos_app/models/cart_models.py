from enum import Enum
from pydantic import BaseModel, Field
from typing import Any, List, Optional

from pos_app.models.catalog_models import CamelModel, Customer, EntityId, Product
from pos_app.services.pos.money import Money, OptionalMoney, ZERO


class SaleType(str, Enum):
    RETAIL = "retail"
    WHOLESALE = "wholesale"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"
    CREDIT = "credit"


class CartLine(CamelModel):
    product: Product
    quantity: int = Field(..., ge=1)
    discount: Money = ZERO

    def unit_price(self, sale_type: SaleType) -> Money:
        wholesale = self.product.wholesale_price
        if sale_type == SaleType.WHOLESALE and wholesale is not None and wholesale > 0:
            return wholesale
        return self.product.retail_price

    def subtotal(self, sale_type: SaleType) -> Money:
        return self.unit_price(sale_type) * self.quantity

    def effective_discount(self, sale_type: SaleType) -> Money:
        return max(ZERO, min(self.discount, self.subtotal(sale_type)))


class CartSnapshot(CamelModel):
    """
    The persisted cart record: {cart, customer, saleType, notes}.
    """

    lines: List[CartLine] = Field(default_factory=list, alias="cart")
    customer: Optional[Customer] = None
    sale_type: SaleType = SaleType.RETAIL
    notes: str = ""


class CartTotals(BaseModel):
    subtotal: Money
    discount: Money
    total: Money


class CheckoutLine(CamelModel):
    product_id: EntityId
    quantity: int
    discount_amount: Money = ZERO


class CheckoutRequest(CamelModel):
    customer_id: Optional[EntityId] = None
    sale_type: SaleType
    items: List[CheckoutLine]
    payment_method: PaymentMethod
    payment_status: str = "paid"
    paid_amount: Money
    notes: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        payload = self.model_dump(mode="json", by_alias=True)

        # Amounts travel as JSON numbers
        payload["paidAmount"] = float(self.paid_amount)
        for item, line in zip(payload["items"], self.items):
            item["discountAmount"] = float(line.discount_amount)

        return payload


class CheckoutResult(BaseModel):
    sale_identifier: str
    total: Money
    paid: Money
    change: Money


# -------------------------------------------------
# Request bodies
# -------------------------------------------------
class AddItemIn(BaseModel):
    product_id: EntityId


class QuantityDeltaIn(BaseModel):
    delta: int


class DiscountIn(BaseModel):
    amount: Money


class SaleTypeIn(BaseModel):
    sale_type: SaleType


class NotesIn(BaseModel):
    notes: Optional[str] = ""


class CustomerIn(BaseModel):
    customer_id: EntityId


class ScanIn(BaseModel):
    code: str = Field(..., min_length=1)


class CameraErrorIn(BaseModel):
    name: Optional[str] = None
    message: Optional[str] = None


class CheckoutIn(BaseModel):
    payment_method: PaymentMethod = PaymentMethod.CASH
    paid_amount: OptionalMoney = None
    notes: Optional[str] = None
