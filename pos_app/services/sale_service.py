import logging
from typing import Any, Dict

from pos_app.integrations.api_client import api_request
from pos_app.models.cart_models import CheckoutRequest
from pos_app.models.sale_models import SaleReceipt


logger = logging.getLogger(__name__)


# Shown when the backend committed the sale but returned no number
UNKNOWN_SALE_IDENTIFIER = "?"


def _sale_identifier(res: Dict[str, Any]) -> str:
    sale = res.get("sale") or res.get("data") or {}

    for key in ("saleNumber", "saleIdentifier", "id"):
        value = sale.get(key) if isinstance(sale, dict) else None
        if value not in (None, ""):
            return str(value)

    value = res.get("saleNumber") or res.get("saleIdentifier")
    return str(value) if value else ""


# -------------------------------------------------
# SALE COMMIT
# -------------------------------------------------
def create_sale(request: CheckoutRequest) -> SaleReceipt:
    """
    Sends the sale once. The backend decrements stock, persists the record
    and returns its identifier.
    """

    res = api_request(
        "POST",
        "/sales",
        json=request.to_payload(),
    )

    sale_identifier = _sale_identifier(res)

    if not sale_identifier:
        # 2xx: the sale is committed
        logger.warning("Sale created without identifier | %s", res)
        sale_identifier = UNKNOWN_SALE_IDENTIFIER

    return SaleReceipt(sale_identifier=sale_identifier, raw=res)
