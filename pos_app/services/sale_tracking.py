from typing import Any, Dict, Optional

from pos_app.integrations.api_client import api_request


MAX_PAGE_SIZE = 100


def list_sales(
    page: int = 1,
    limit: int = 50,
    status: Optional[str] = None,
    search: Optional[str] = None,
) -> Dict[str, Any]:

    if limit > MAX_PAGE_SIZE:
        limit = MAX_PAGE_SIZE

    if page < 1:
        page = 1

    params: Dict[str, Any] = {
        "page": page,
        "limit": limit,
    }

    if status:
        params["status"] = status

    if search:
        params["search"] = search

    res = api_request("GET", "/sales", params=params)

    return {
        "status": "success",
        "sales": res.get("sales", []) or [],
        "pagination": res.get("pagination") or {},
    }


def get_sale_detail(sale_id: str) -> Dict[str, Any]:

    res = api_request("GET", f"/sales/{sale_id}")

    return {
        "status": "success",
        "sale": res.get("sale") or res.get("data") or {},
    }


def cancel_sale(sale_id: str, reason: str) -> Dict[str, Any]:

    res = api_request(
        "POST",
        f"/sales/{sale_id}/cancel",
        json={"reason": reason},
    )

    return {
        "status": "cancelled",
        "sale": res.get("sale") or res.get("data") or {},
    }
