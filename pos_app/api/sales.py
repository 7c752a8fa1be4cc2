from fastapi import APIRouter, Depends, HTTPException
from typing import Optional

from pos_app.api.deps import require_frontend_token
from pos_app.integrations.api_client import APIError
from pos_app.models.sale_models import CancelSaleIn
from pos_app.services.sale_tracking import (
    cancel_sale,
    get_sale_detail,
    list_sales,
)

router = APIRouter(
    prefix="/sales",
    tags=["sales"],
    dependencies=[Depends(require_frontend_token)],
)


def _backend_error(e: APIError) -> HTTPException:
    # Client errors from the backend are passed through as-is
    status_code = e.status_code if e.status_code and 400 <= e.status_code < 500 else 502
    return HTTPException(status_code=status_code, detail=e.message)


@router.get("")
def sales(
    page: int = 1,
    limit: int = 50,
    status: Optional[str] = None,
    search: Optional[str] = None,
):
    try:
        return list_sales(page=page, limit=limit, status=status, search=search)

    except APIError as e:
        raise _backend_error(e)


@router.get("/{sale_id}")
def sale_detail(sale_id: str):
    try:
        return get_sale_detail(sale_id)

    except APIError as e:
        raise _backend_error(e)


@router.post("/{sale_id}/cancel")
def sale_cancel(sale_id: str, payload: CancelSaleIn):
    try:
        return cancel_sale(sale_id, payload.reason)

    except APIError as e:
        raise _backend_error(e)
