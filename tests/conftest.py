import pytest

from pos_app.integrations.api_client import APIError, tokens
from pos_app.models.catalog_models import Customer, Product
from pos_app.models.sale_models import SaleReceipt
from pos_app.services.pos.cart_controller import CartController
from pos_app.services.pos.cart_store import MemoryCartStore


def make_product(
    id=1,
    name="Ron Añejo 750ml",
    barcode="7501001",
    retail="10.00",
    wholesale="8.00",
    stock=5,
    active=True,
) -> Product:
    return Product.model_validate(
        {
            "id": id,
            "name": name,
            "barcode": barcode,
            "retailPrice": retail,
            "wholesalePrice": wholesale,
            "currentStock": stock,
            "isActive": active,
        }
    )


def make_customer(id=7, **overrides) -> Customer:
    data = {
        "id": id,
        "customerType": "individual",
        "firstName": "Ana",
        "lastName": "López",
        "email": "ana@example.com",
        "phone": "5551234567",
    }
    data.update(overrides)
    return Customer.model_validate(data)


class FakeCatalog:
    def __init__(self, *products: Product) -> None:
        self.by_barcode = {p.barcode: p for p in products}
        self.lookups: list[str] = []
        self.error: Exception | None = None

    def find_by_barcode(self, barcode: str):
        self.lookups.append(barcode)
        if self.error is not None:
            raise self.error
        return self.by_barcode.get(barcode)


class FakeSales:
    def __init__(self, sale_identifier: str = "S-1001") -> None:
        self.sale_identifier = sale_identifier
        self.requests = []
        self.error: Exception | None = None
        self.during_commit = None

    def create_sale(self, request):
        self.requests.append(request)
        if self.during_commit is not None:
            self.during_commit()
        if self.error is not None:
            raise self.error
        return SaleReceipt(
            sale_identifier=self.sale_identifier,
            raw={"sale": {"saleNumber": self.sale_identifier}},
        )


@pytest.fixture(autouse=True)
def _reset_tokens():
    tokens.clear()
    yield
    tokens.clear()


@pytest.fixture
def p1() -> Product:
    return make_product()


@pytest.fixture
def store() -> MemoryCartStore:
    return MemoryCartStore()


@pytest.fixture
def catalog(p1) -> FakeCatalog:
    return FakeCatalog(p1)


@pytest.fixture
def sales() -> FakeSales:
    return FakeSales()


@pytest.fixture
def controller(store, catalog, sales) -> CartController:
    return CartController(
        store=store,
        find_by_barcode=catalog.find_by_barcode,
        create_sale=sales.create_sale,
        register_id="test",
    )


def api_error(message="boom", status_code=400) -> APIError:
    return APIError(message, status_code=status_code, payload={"error": message})


