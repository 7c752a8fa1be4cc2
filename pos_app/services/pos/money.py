from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Annotated, Any

from pydantic import BeforeValidator

from pos_app.core.config import settings


CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """
    Coerce backend/user amounts ("10.5", 10.5, Decimal) to a 2-place Decimal.
    Floats go through str() so binary noise never reaches the cart math.
    """
    if value is None or value == "":
        return ZERO

    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {value!r}")

    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")

    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def _money_or_none(value: Any):
    if value is None or value == "":
        return None
    return to_money(value)


Money = Annotated[Decimal, BeforeValidator(to_money)]
OptionalMoney = Annotated[Decimal | None, BeforeValidator(_money_or_none)]


def format_currency(value: Decimal) -> str:
    amount = to_money(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}{settings.CURRENCY_SYMBOL}{abs(amount):,.2f}"
