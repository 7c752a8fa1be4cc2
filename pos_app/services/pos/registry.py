import threading
from typing import Callable, Dict, Optional

from pos_app.core.config import settings
from pos_app.services import product_service, sale_service
from pos_app.services.pos.cart_controller import CartController
from pos_app.services.pos.cart_store import FileCartStore, storage_key


def default_controller_factory(register_id: str) -> CartController:
    store = FileCartStore(
        settings.CART_STORAGE_DIR,
        storage_key(settings.CART_STORAGE_KEY, register_id),
    )
    return CartController(
        store=store,
        find_by_barcode=product_service.find_by_barcode,
        create_sale=sale_service.create_sale,
        register_id=register_id,
    )


class CartRegistry:
    """
    One controller per register station, created (and rehydrated) on first use.
    """

    def __init__(
        self,
        factory: Optional[Callable[[str], CartController]] = None,
    ) -> None:
        self._factory = factory or default_controller_factory
        self._controllers: Dict[str, CartController] = {}
        self._lock = threading.Lock()

    def get(self, register_id: Optional[str] = None) -> CartController:
        register_id = (register_id or "").strip() or settings.DEFAULT_REGISTER_ID

        with self._lock:
            controller = self._controllers.get(register_id)
            if controller is None:
                controller = self._factory(register_id)
                self._controllers[register_id] = controller
            return controller

    def registers(self) -> list[str]:
        with self._lock:
            return sorted(self._controllers)


registry = CartRegistry()
