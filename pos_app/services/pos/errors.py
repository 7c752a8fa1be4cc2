from typing import Any, Dict, Optional


class POSError(ValueError):
    """
    Recoverable cart/checkout rejection.
    Carries everything the till needs to show a toast.
    """

    code = "pos_error"
    variant = "error"
    status_code = 400
    default_message = "Operación no permitida"

    def __init__(self, message: Optional[str] = None, **context: Any) -> None:
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "code": self.code,
            "variant": self.variant,
            "message": self.message,
        }
        if self.context:
            data["context"] = self.context
        return data


# -------------------------------------------------
# Cart
# -------------------------------------------------
class StockInsufficient(POSError):
    code = "stock_insufficient"
    variant = "warning"
    status_code = 409

    def __init__(self, available: int) -> None:
        super().__init__(f"Stock insuficiente. Disponible: {available}", available=available)


class OutOfStock(POSError):
    code = "out_of_stock"
    status_code = 409
    default_message = "Producto sin stock disponible"


class LineNotFound(POSError):
    code = "line_not_found"
    status_code = 404

    def __init__(self, index: int) -> None:
        super().__init__(f"No existe la línea {index} en el carrito", index=index)


class InvalidDiscount(POSError):
    code = "invalid_discount"
    default_message = "El descuento no puede ser negativo"


# -------------------------------------------------
# Lookup
# -------------------------------------------------
class ProductNotFound(POSError):
    code = "product_not_found"
    variant = "warning"
    status_code = 404

    def __init__(self, barcode: str) -> None:
        super().__init__(f"Producto con código {barcode} no encontrado", barcode=barcode)


class ProductInactive(POSError):
    code = "product_inactive"
    status_code = 409

    def __init__(self, name: str) -> None:
        super().__init__(f'El producto "{name}" no está activo', name=name)


class ProductLookupFailed(POSError):
    code = "product_lookup_failed"
    status_code = 502
    default_message = "Error al buscar producto"


# -------------------------------------------------
# Checkout
# -------------------------------------------------
class EmptyCart(POSError):
    code = "empty_cart"
    variant = "warning"
    default_message = "El carrito está vacío"


class InsufficientPayment(POSError):
    code = "insufficient_payment"
    default_message = "El monto pagado es insuficiente"


class CheckoutInProgress(POSError):
    code = "checkout_in_progress"
    variant = "warning"
    status_code = 409
    default_message = "Ya hay una venta en proceso"


class CheckoutFailed(POSError):
    code = "checkout_failed"
    status_code = 502
    default_message = "Error al procesar la venta"


# -------------------------------------------------
# Camera
# -------------------------------------------------
class CameraError(POSError):
    code = "camera_error"
    status_code = 503
    default_message = "No se pudo acceder a la cámara."


class CameraPermissionDenied(CameraError):
    code = "camera_permission_denied"
    status_code = 403
    default_message = (
        "Permiso de cámara denegado. Ve a la configuración de tu navegador "
        "y permite el acceso a la cámara."
    )


class CameraNotFound(CameraError):
    code = "camera_not_found"
    status_code = 404
    default_message = "No se encontró ninguna cámara en tu dispositivo."


class CameraBusy(CameraError):
    code = "camera_busy"
    status_code = 409
    default_message = "La cámara está siendo usada por otra aplicación."


class CameraUnsupported(CameraError):
    code = "camera_unsupported"
    status_code = 501
    default_message = "Tu navegador no soporta acceso a la cámara"
