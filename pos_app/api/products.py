from fastapi import APIRouter, Depends, HTTPException
from typing import Optional

from pos_app.api.deps import require_frontend_token
from pos_app.integrations.api_client import APIError
from pos_app.services.product_service import search_products

router = APIRouter(
    prefix="/products",
    tags=["products"],
    dependencies=[Depends(require_frontend_token)],
)


@router.get("/search")
def products(
    q: str = "",
    limit: Optional[int] = None,
):
    """
    Manual product search for the till:
    - name or barcode text
    - short queries return an empty list
    """

    try:
        items = search_products(q, limit=limit)
    except APIError as e:
        raise HTTPException(
            status_code=502,
            detail=e.message,
        )

    return {
        "status": "success",
        "products": [p.model_dump(mode="json", by_alias=True) for p in items],
    }
