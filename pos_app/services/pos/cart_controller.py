from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from pos_app.integrations.api_client import APIError
from pos_app.models.cart_models import (
    CartLine,
    CartSnapshot,
    CartTotals,
    CheckoutLine,
    CheckoutRequest,
    CheckoutResult,
    PaymentMethod,
    SaleType,
)
from pos_app.models.catalog_models import Customer, Product
from pos_app.models.sale_models import SaleReceipt
from pos_app.services.pos.cart_store import CartStore
from pos_app.services.pos.errors import (
    CheckoutFailed,
    CheckoutInProgress,
    EmptyCart,
    InsufficientPayment,
    InvalidDiscount,
    LineNotFound,
    OutOfStock,
    POSError,
    ProductInactive,
    ProductLookupFailed,
    ProductNotFound,
    StockInsufficient,
)
from pos_app.services.pos.money import ZERO, format_currency, to_money
from pos_app.services.pos.scanner import ScanGuard


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    variant: str
    message: str


def compute_totals(lines: List[CartLine], sale_type: SaleType) -> CartTotals:
    """
    Subtotal at the sale type's tier, minus flat per-line discounts.
    A line's discount never exceeds that line's own subtotal.
    """
    subtotal = sum((line.subtotal(sale_type) for line in lines), ZERO)
    discount = sum((line.effective_discount(sale_type) for line in lines), ZERO)
    return CartTotals(subtotal=subtotal, discount=discount, total=subtotal - discount)


class CartController:
    """
    Owns the cart of one register station.

    Every mutation builds the new state aside, writes it to the store and only
    then swaps it in, so a failed write leaves the cart as it was. Lookups and
    the sale commit run outside the lock.
    """

    def __init__(
        self,
        store: CartStore,
        find_by_barcode: Callable[[str], Optional[Product]],
        create_sale: Callable[[CheckoutRequest], SaleReceipt],
        register_id: str = "main",
    ) -> None:
        self.store = store
        self.register_id = register_id
        self._find_by_barcode = find_by_barcode
        self._create_sale = create_sale

        self._lock = threading.RLock()
        self._state = CartSnapshot()
        self._payment_method = PaymentMethod.CASH
        self._paid_amount: Optional[Decimal] = None
        self._checkout_in_flight = False
        self._notifications: List[Notification] = []

        self.scan_guard = ScanGuard()

        self.rehydrate()

    # -------------------------------------------------
    # Read access
    # -------------------------------------------------
    @property
    def lines(self) -> List[CartLine]:
        with self._lock:
            return [line.model_copy(deep=True) for line in self._state.lines]

    @property
    def customer(self) -> Optional[Customer]:
        return self._state.customer

    @property
    def sale_type(self) -> SaleType:
        return self._state.sale_type

    @property
    def notes(self) -> str:
        return self._state.notes

    @property
    def payment_method(self) -> PaymentMethod:
        return self._payment_method

    @property
    def paid_amount(self) -> Optional[Decimal]:
        return self._paid_amount

    @property
    def checkout_in_flight(self) -> bool:
        return self._checkout_in_flight

    def snapshot(self) -> CartSnapshot:
        with self._lock:
            return self._state.model_copy(deep=True)

    def compute_totals(self) -> CartTotals:
        with self._lock:
            return compute_totals(self._state.lines, self._state.sale_type)

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            state = self._state.model_dump(mode="json", by_alias=True)
            totals = self.compute_totals().model_dump(mode="json")
            customer = self._state.customer
            return {
                "register_id": self.register_id,
                "lines": state["cart"],
                "customer": state["customer"],
                "customer_name": customer.display_name if customer else None,
                "sale_type": state["saleType"],
                "notes": state["notes"],
                "payment_method": self._payment_method.value,
                "paid_amount": str(self._paid_amount) if self._paid_amount is not None else None,
                "totals": totals,
                "checkout_in_flight": self._checkout_in_flight,
            }

    # -------------------------------------------------
    # Notifications
    # -------------------------------------------------
    def _notify(self, variant: str, message: str) -> None:
        self._notifications.append(Notification(variant, message))

    def notify_error(self, error: POSError) -> None:
        with self._lock:
            self._notify(error.variant, error.message)

    def drain_notifications(self) -> List[Notification]:
        with self._lock:
            pending, self._notifications = self._notifications, []
            return pending

    # -------------------------------------------------
    # Persistence
    # -------------------------------------------------
    def _commit(self, state: CartSnapshot) -> None:
        self.store.save(state.model_dump_json(by_alias=True))
        self._state = state

    def rehydrate(self) -> CartSnapshot:
        with self._lock:
            state = CartSnapshot()

            try:
                raw = self.store.load()
            except (OSError, ValueError):
                logger.exception("Cart storage unreadable | register %s", self.register_id)
                raw = None

            if raw:
                try:
                    state = CartSnapshot.model_validate_json(raw)
                except ValueError:
                    logger.warning(
                        "Discarding corrupt cart record | register %s", self.register_id
                    )

            self._state = state
            return state.model_copy(deep=True)

    # -------------------------------------------------
    # Cart mutations
    # -------------------------------------------------
    def _ensure_idle(self) -> None:
        if self._checkout_in_flight:
            raise CheckoutInProgress()

    def _line_index(self, product_id: Any) -> Optional[int]:
        for index, line in enumerate(self._state.lines):
            if line.product.id == product_id:
                return index
        return None

    def _line_at(self, index: int) -> CartLine:
        if index < 0 or index >= len(self._state.lines):
            raise LineNotFound(index)
        return self._state.lines[index]

    def add_product(self, product: Product) -> CartLine:
        with self._lock:
            self._ensure_idle()
            lines = list(self._state.lines)
            index = self._line_index(product.id)

            if index is not None:
                quantity = lines[index].quantity + 1
                if quantity > product.current_stock:
                    raise StockInsufficient(product.current_stock)
                lines[index] = lines[index].model_copy(update={"quantity": quantity})
            else:
                if product.current_stock <= 0:
                    raise OutOfStock()
                index = len(lines)
                lines.append(CartLine(product=product, quantity=1))

            self._commit(self._state.model_copy(update={"lines": lines}))
            self._notify("success", f'"{product.name}" agregado al carrito')
            return lines[index].model_copy(deep=True)

    def update_quantity(self, index: int, delta: int) -> Optional[CartLine]:
        with self._lock:
            self._ensure_idle()
            line = self._line_at(index)
            quantity = line.quantity + delta

            if quantity <= 0:
                self.remove_line(index)
                return None

            if quantity > line.product.current_stock:
                raise StockInsufficient(line.product.current_stock)

            lines = list(self._state.lines)
            lines[index] = line.model_copy(update={"quantity": quantity})
            self._commit(self._state.model_copy(update={"lines": lines}))
            return lines[index].model_copy(deep=True)

    def remove_line(self, index: int) -> CartLine:
        with self._lock:
            self._ensure_idle()
            removed = self._line_at(index)
            lines = [line for i, line in enumerate(self._state.lines) if i != index]
            self._commit(self._state.model_copy(update={"lines": lines}))
            self._notify("info", "Producto eliminado del carrito")
            return removed

    def set_line_discount(self, index: int, amount: Any) -> CartLine:
        discount = to_money(amount)
        if discount < 0:
            raise InvalidDiscount()

        with self._lock:
            self._ensure_idle()
            line = self._line_at(index)
            lines = list(self._state.lines)
            lines[index] = line.model_copy(update={"discount": discount})
            self._commit(self._state.model_copy(update={"lines": lines}))
            return lines[index].model_copy(deep=True)

    def set_customer(self, customer: Optional[Customer]) -> None:
        with self._lock:
            self._ensure_idle()
            self._commit(self._state.model_copy(update={"customer": customer}))

    def set_sale_type(self, sale_type: Any) -> SaleType:
        sale_type = SaleType(sale_type)
        with self._lock:
            self._ensure_idle()
            self._commit(self._state.model_copy(update={"sale_type": sale_type}))
            return sale_type

    def set_notes(self, notes: Optional[str]) -> None:
        with self._lock:
            self._ensure_idle()
            self._commit(self._state.model_copy(update={"notes": notes or ""}))

    def set_payment_method(self, method: Any) -> PaymentMethod:
        with self._lock:
            self._ensure_idle()
            self._payment_method = PaymentMethod(method)
            return self._payment_method

    def set_paid_amount(self, amount: Any) -> Optional[Decimal]:
        with self._lock:
            self._ensure_idle()
            self._paid_amount = None if amount is None or amount == "" else to_money(amount)
            return self._paid_amount

    def _reset(self) -> None:
        self.store.delete()
        self._state = CartSnapshot(sale_type=self._state.sale_type)
        self._paid_amount = None

    def clear_cart(self) -> None:
        with self._lock:
            self._ensure_idle()
            self._reset()
            self._notify("info", "Carrito limpiado")

    # -------------------------------------------------
    # Barcode scanning
    # -------------------------------------------------
    def begin_scan_session(self) -> None:
        self.scan_guard.reset()

    def end_scan_session(self) -> None:
        self.scan_guard.reset()

    def scan_and_add_by_barcode(self, code: str) -> Optional[CartLine]:
        """
        Look the code up and add the product. Returns None when the scan is
        a duplicate of one still being processed or of the previous code.
        A failed scan does not count as previous, so the same code can be
        rescanned.
        """
        code = (code or "").strip()
        if not code:
            raise ProductNotFound(code)

        if self.scan_guard.begin(code) is None:
            logger.debug("Duplicate scan suppressed | %s", code)
            return None

        accepted = False
        try:
            try:
                product = self._find_by_barcode(code)
            except APIError as e:
                raise ProductLookupFailed() from e

            if product is None:
                raise ProductNotFound(code)

            if not product.is_active:
                raise ProductInactive(product.name)

            line = self.add_product(product)
            accepted = True
            return line
        finally:
            self.scan_guard.finish(accepted)

    # -------------------------------------------------
    # Checkout
    # -------------------------------------------------
    def _build_request(
        self,
        payment_method: PaymentMethod,
        paid: Decimal,
        notes: str,
    ) -> CheckoutRequest:
        state = self._state
        return CheckoutRequest(
            customer_id=state.customer.id if state.customer else None,
            sale_type=state.sale_type,
            items=[
                CheckoutLine(
                    product_id=line.product.id,
                    quantity=line.quantity,
                    discount_amount=line.effective_discount(state.sale_type),
                )
                for line in state.lines
            ],
            payment_method=payment_method,
            paid_amount=paid,
            notes=notes or None,
        )

    def checkout(
        self,
        payment_method: Any = None,
        paid_amount: Any = None,
        notes: Optional[str] = None,
    ) -> CheckoutResult:
        with self._lock:
            if self._checkout_in_flight:
                raise CheckoutInProgress()

            if not self._state.lines:
                raise EmptyCart()

            # Arguments apply to this attempt only
            method = (
                PaymentMethod(payment_method)
                if payment_method is not None
                else self._payment_method
            )
            declared = to_money(paid_amount) if paid_amount is not None else self._paid_amount
            sale_notes = notes if notes is not None else self._state.notes

            total = self.compute_totals().total
            paid = declared if declared is not None else total

            if paid < total:
                raise InsufficientPayment(total=str(total), paid=str(paid))

            request = self._build_request(method, paid, sale_notes)
            self._checkout_in_flight = True

        try:
            receipt = self._create_sale(request)
        except APIError as e:
            logger.warning(
                "Checkout failed | register %s | %s | %s",
                self.register_id,
                e.status_code,
                e.message,
            )
            with self._lock:
                self._checkout_in_flight = False
            raise CheckoutFailed(e.message or None, status=e.status_code) from e
        except Exception:
            with self._lock:
                self._checkout_in_flight = False
            raise

        change = paid - total

        with self._lock:
            self._state = CartSnapshot(sale_type=self._state.sale_type)
            self._paid_amount = None
            try:
                self.store.delete()
            except OSError:
                # Sale already committed
                logger.exception("Cart record not removed | register %s", self.register_id)
            finally:
                self._checkout_in_flight = False

            self._notify(
                "success",
                f"Venta {receipt.sale_identifier} completada. "
                f"Cambio: {format_currency(change)}",
            )

        logger.info(
            "Sale committed | register %s | %s | total %s",
            self.register_id,
            receipt.sale_identifier,
            total,
        )

        return CheckoutResult(
            sale_identifier=receipt.sale_identifier,
            total=total,
            paid=paid,
            change=change,
        )
