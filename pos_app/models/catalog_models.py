from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Literal, Optional, Union

from pos_app.services.pos.money import Money, OptionalMoney


EntityId = Union[int, str]


class CamelModel(BaseModel):
    # Backend payloads and stored carts use camelCase keys
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Product(CamelModel):
    """
    Catalog product as last seen by the register.
    `current_stock` is the soft ceiling for cart quantities.
    """

    id: EntityId
    name: str
    barcode: Optional[str] = None
    retail_price: Money
    wholesale_price: OptionalMoney = None
    current_stock: int
    is_active: bool = True


class Customer(CamelModel):
    id: EntityId
    customer_type: Literal["individual", "business"] = "individual"
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    @property
    def display_name(self) -> str:
        if self.customer_type == "business":
            return self.company_name or ""
        return " ".join(p for p in (self.first_name, self.last_name) if p)
