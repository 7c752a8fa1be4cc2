from fastapi import APIRouter, Depends, HTTPException

from pos_app.api.deps import require_frontend_token
from pos_app.integrations.api_client import APIError
from pos_app.models.auth_models import LoginIn
from pos_app.services import auth_service

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    dependencies=[Depends(require_frontend_token)],
)


@router.post("/login")
def login(payload: LoginIn):
    try:
        return auth_service.login(payload.username, payload.password)

    except auth_service.AuthError as e:
        raise HTTPException(status_code=502, detail=str(e))

    except APIError as e:
        status_code = 401 if e.status_code in (400, 401, 403) else 502
        raise HTTPException(status_code=status_code, detail=e.message)


@router.post("/logout")
def logout():
    return auth_service.logout()


@router.get("/me")
def me():
    try:
        return auth_service.me()

    except APIError as e:
        status_code = 401 if e.status_code == 401 else 502
        raise HTTPException(status_code=status_code, detail=e.message)
