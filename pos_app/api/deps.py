import re
from fastapi import Header, HTTPException
from typing import Optional

from pos_app.core.config import settings
from pos_app.services.pos import registry as pos_registry
from pos_app.services.pos.cart_controller import CartController


_REGISTER_ID = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def require_frontend_token(
    x_frontend_token: Optional[str] = Header(
        default=None,
        alias="X-Frontend-Token",
    ),
) -> None:
    """
    Simple frontend token validation (MVP protection).
    """
    if not settings.FRONTEND_SECRET_TOKEN:
        return

    if x_frontend_token != settings.FRONTEND_SECRET_TOKEN:
        raise HTTPException(status_code=401, detail="Unauthorized")


def get_controller(
    x_register_id: Optional[str] = Header(
        default=None,
        alias="X-Register-Id",
    ),
) -> CartController:
    register_id = (x_register_id or "").strip() or settings.DEFAULT_REGISTER_ID

    if not _REGISTER_ID.match(register_id):
        raise HTTPException(status_code=400, detail="Invalid register id")

    return pos_registry.registry.get(register_id)
