import logging
from typing import List, Optional

from pydantic import ValidationError

from pos_app.core.config import settings
from pos_app.integrations.api_client import APIError, api_request
from pos_app.models.catalog_models import Customer, EntityId


logger = logging.getLogger(__name__)


class CustomerError(ValueError):
    pass


# -------------------------------------------------
# Search Customers
# -------------------------------------------------
def search_customers(query: str, limit: Optional[int] = None) -> List[Customer]:

    if not limit or limit < 1:
        limit = settings.SEARCH_LIMIT

    res = api_request(
        "GET",
        "/customers",
        params={
            "search": (query or "").strip(),
            "limit": limit,
            "page": 1,
        },
    )

    customers = []

    for row in res.get("customers") or []:
        try:
            customers.append(Customer.model_validate(row))
        except ValidationError:
            logger.warning("Skipping malformed customer row | id=%s", row.get("id"))

    return customers


# -------------------------------------------------
# Get Customer by ID
# -------------------------------------------------
def get_customer(customer_id: EntityId) -> Customer:
    try:
        res = api_request("GET", f"/customers/{customer_id}")
    except APIError as e:
        if e.status_code == 404:
            raise CustomerError(f"Cliente {customer_id} no encontrado")
        raise

    row = res.get("customer") or res.get("data") or res

    try:
        return Customer.model_validate(row)
    except ValidationError:
        raise CustomerError(f"Cliente {customer_id} no válido")
