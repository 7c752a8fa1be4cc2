import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from pos_app.core.config import settings
from pos_app.integrations.api_client import APIError, api_request
from pos_app.models.catalog_models import EntityId, Product


logger = logging.getLogger(__name__)


def _to_products(rows: List[Dict[str, Any]]) -> List[Product]:
    products = []

    for row in rows:
        try:
            products.append(Product.model_validate(row))
        except ValidationError:
            # Rows without price/stock cannot go into a cart
            logger.warning("Skipping malformed product row | id=%s", row.get("id"))

    return products


def search_products(query: str, limit: Optional[int] = None) -> List[Product]:
    """
    Text search over name / barcode. Queries shorter than
    PRODUCT_SEARCH_MIN_LENGTH return nothing without hitting the backend.
    """

    query = (query or "").strip()
    if len(query) < settings.PRODUCT_SEARCH_MIN_LENGTH:
        return []

    if not limit or limit < 1:
        limit = settings.SEARCH_LIMIT

    res = api_request(
        "GET",
        "/products",
        params={"search": query, "limit": limit},
    )

    return _to_products(res.get("products") or [])


def find_by_barcode(barcode: str) -> Optional[Product]:
    """
    Exactly-one lookup: search by the code, keep the row whose barcode
    matches it verbatim.
    """

    barcode = (barcode or "").strip()
    if not barcode:
        return None

    res = api_request(
        "GET",
        "/products",
        params={"search": barcode, "limit": settings.SEARCH_LIMIT},
    )

    for product in _to_products(res.get("products") or []):
        if product.barcode == barcode:
            return product

    return None


def get_product(product_id: EntityId) -> Optional[Product]:
    try:
        res = api_request("GET", f"/products/{product_id}")
    except APIError as e:
        if e.status_code == 404:
            return None
        raise

    row = res.get("product") or res.get("data") or res
    if not row:
        return None

    try:
        return Product.model_validate(row)
    except ValidationError:
        logger.warning("Malformed product payload | id=%s", product_id)
        raise APIError("Invalid product payload")
