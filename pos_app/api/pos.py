from dataclasses import asdict
from fastapi import APIRouter, Depends, HTTPException
from typing import Any, Callable, Dict

from pos_app.api.deps import get_controller, require_frontend_token
from pos_app.integrations.api_client import APIError
from pos_app.models.cart_models import (
    AddItemIn,
    CameraErrorIn,
    CheckoutIn,
    CustomerIn,
    DiscountIn,
    NotesIn,
    QuantityDeltaIn,
    SaleTypeIn,
    ScanIn,
)
from pos_app.services import customer_service, product_service
from pos_app.services.pos.cart_controller import CartController
from pos_app.services.pos.errors import POSError, ProductInactive
from pos_app.services.pos.scanner import classify_camera_error

router = APIRouter(
    prefix="/pos",
    tags=["pos"],
    dependencies=[Depends(require_frontend_token)],
)


def _respond(controller: CartController, **extra: Any) -> Dict[str, Any]:
    return {
        "status": "success",
        **extra,
        "cart": controller.to_dict(),
        "notifications": [asdict(n) for n in controller.drain_notifications()],
    }


def _run(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """
    Runs one controller/service call and maps its failures to HTTP errors.
    """
    try:
        return fn(*args, **kwargs)

    except POSError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())

    except APIError as e:
        raise HTTPException(status_code=502, detail=e.message)

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# -------------------------------------------------
# Cart
# -------------------------------------------------
@router.get("/cart")
def get_cart(controller: CartController = Depends(get_controller)):
    return _respond(controller)


@router.post("/cart/items")
def add_item(payload: AddItemIn, controller: CartController = Depends(get_controller)):
    product = _run(product_service.get_product, payload.product_id)

    if product is None:
        raise HTTPException(status_code=404, detail="Producto no encontrado")

    if not product.is_active:
        e = ProductInactive(product.name)
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())

    line = _run(controller.add_product, product)
    return _respond(controller, line=line.model_dump(mode="json", by_alias=True))


@router.patch("/cart/items/{index}")
def update_item_quantity(
    index: int,
    payload: QuantityDeltaIn,
    controller: CartController = Depends(get_controller),
):
    _run(controller.update_quantity, index, payload.delta)
    return _respond(controller)


@router.put("/cart/items/{index}/discount")
def set_item_discount(
    index: int,
    payload: DiscountIn,
    controller: CartController = Depends(get_controller),
):
    _run(controller.set_line_discount, index, payload.amount)
    return _respond(controller)


@router.delete("/cart/items/{index}")
def remove_item(index: int, controller: CartController = Depends(get_controller)):
    _run(controller.remove_line, index)
    return _respond(controller)


@router.delete("/cart")
def clear_cart(controller: CartController = Depends(get_controller)):
    _run(controller.clear_cart)
    return _respond(controller)


@router.put("/cart/sale-type")
def set_sale_type(payload: SaleTypeIn, controller: CartController = Depends(get_controller)):
    _run(controller.set_sale_type, payload.sale_type)
    return _respond(controller)


@router.put("/cart/notes")
def set_notes(payload: NotesIn, controller: CartController = Depends(get_controller)):
    _run(controller.set_notes, payload.notes)
    return _respond(controller)


@router.put("/cart/customer")
def set_customer(payload: CustomerIn, controller: CartController = Depends(get_controller)):
    customer = _run(customer_service.get_customer, payload.customer_id)
    _run(controller.set_customer, customer)
    return _respond(controller)


@router.delete("/cart/customer")
def clear_customer(controller: CartController = Depends(get_controller)):
    _run(controller.set_customer, None)
    return _respond(controller)


# -------------------------------------------------
# Scanner
# -------------------------------------------------
@router.post("/scanner/open")
def open_scanner(controller: CartController = Depends(get_controller)):
    controller.begin_scan_session()
    return _respond(controller)


@router.post("/scanner/close")
def close_scanner(controller: CartController = Depends(get_controller)):
    controller.end_scan_session()
    return _respond(controller)


@router.post("/scan")
def scan(payload: ScanIn, controller: CartController = Depends(get_controller)):
    line = _run(controller.scan_and_add_by_barcode, payload.code)

    return _respond(
        controller,
        duplicate=line is None,
        line=line.model_dump(mode="json", by_alias=True) if line else None,
    )


@router.post("/scanner/error")
def scanner_error(payload: CameraErrorIn):
    error = classify_camera_error(payload.name, payload.message)
    return {
        "status": "error",
        "error": error.to_dict(),
    }


# -------------------------------------------------
# Checkout
# -------------------------------------------------
@router.post("/checkout")
def checkout(payload: CheckoutIn, controller: CartController = Depends(get_controller)):
    result = _run(
        controller.checkout,
        payment_method=payload.payment_method,
        paid_amount=payload.paid_amount,
        notes=payload.notes,
    )
    return _respond(controller, sale=result.model_dump(mode="json"))
