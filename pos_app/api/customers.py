from fastapi import APIRouter, Depends, HTTPException
from typing import Optional

from pos_app.api.deps import require_frontend_token
from pos_app.integrations.api_client import APIError
from pos_app.services.customer_service import search_customers

router = APIRouter(
    prefix="/customers",
    tags=["customers"],
    dependencies=[Depends(require_frontend_token)],
)


@router.get("/search")
def customers(q: str = "", limit: Optional[int] = None):

    try:
        items = search_customers(q, limit=limit)
    except APIError as e:
        raise HTTPException(status_code=502, detail=e.message)

    return {
        "status": "success",
        "customers": [
            {
                **c.model_dump(mode="json", by_alias=True),
                "displayName": c.display_name,
            }
            for c in items
        ],
    }
