import os

# Pas de Redis pendant les tests: le lifespan n'initialise pas fastapi-limiter
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import pytest
from decimal import Decimal
from typing import Any, Dict, Generator, List, Optional
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from storefront import config
from storefront.app_setup.factory import create_app
from storefront.catalog.models import (
    Addon,
    CatalogSnapshot,
    FunctionOption,
    Option,
    Product,
    SiteSettings,
    Step,
)
from storefront.pricing import currency
from storefront.utils.security import get_optional_user

# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)

@pytest.fixture(scope="session")
def app():
    return create_app()

@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

@pytest.fixture
def as_user(app):
    """Simule un utilisateur authentifié (Bearer valide)."""
    def _login(user_id: str = "user-1"):
        app.dependency_overrides[get_optional_user] = lambda: {"id": user_id, "email": f"{user_id}@example.com"}
    yield _login
    app.dependency_overrides.pop(get_optional_user, None)

# Aucun appel réseau: Supabase mocké, taux de change fixe, cache remis à zéro
@pytest.fixture(autouse=True)
def mock_external_services(monkeypatch):
    monkeypatch.setattr("storefront.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("storefront.infra.supabase_client.get_service_supabase", lambda: MagicMock())
    monkeypatch.setattr(config, "EXCHANGE_RATE_USD_TO_CAD", "1.25")
    monkeypatch.setattr(config, "RESEND_API_KEY", "")
    currency.reset_rate_cache()
    yield
    currency.reset_rate_cache()


# --- Catalogue de référence: montre (boîtier, cadran, bracelet) + étape additive ---

def make_watch_catalog() -> CatalogSnapshot:
    fn = FunctionOption(id="fn-watch", labels={"en": "Watch", "fr": "Montre"}, price=Decimal("0"), discount_percent=Decimal("0"))
    case = Step(id="s-case", step_key="case", labels={"en": "Case", "fr": "Boîtier"}, sort_order=1)
    dial = Step(id="s-dial", step_key="dial", labels={"en": "Dial", "fr": "Cadran"}, sort_order=2)
    strap = Step(id="s-strap", step_key="strap", labels={"en": "Strap", "fr": "Bracelet"}, optional=True, sort_order=3)
    extra = Step(id="s-extra", step_key="extra", labels={"en": "Extras", "fr": "Extras"}, optional=True, sort_order=4)
    options = (
        Option(id="o-steel", step_id="s-case", function_option_id="fn-watch", labels={"en": "Steel", "fr": "Acier"},
               price=Decimal("500"), discount_percent=Decimal("10")),
        Option(id="o-gold", step_id="s-case", function_option_id="fn-other", labels={"en": "Gold", "fr": "Or"},
               price=Decimal("2000"), discount_percent=Decimal("0")),
        Option(id="o-blue", step_id="s-dial", function_option_id=None, labels={"en": "Blue", "fr": "Bleu"},
               price=Decimal("200"), discount_percent=Decimal("0")),
        Option(id="o-leather", step_id="s-strap", function_option_id=None, labels={"en": "Leather", "fr": "Cuir"},
               price=Decimal("80"), discount_percent=Decimal("25")),
        Option(id="o-engraving", step_id="s-extra", function_option_id=None, labels={"en": "Engraving", "fr": "Gravure"},
               price=Decimal("30"), discount_percent=Decimal("0")),
        Option(id="o-giftbox", step_id="s-extra", function_option_id=None, labels={"en": "Gift box", "fr": "Coffret"},
               price=Decimal("20"), discount_percent=Decimal("0")),
    )
    addons = (
        Addon(id="a-strap", step_id="s-case", labels={"en": "Spare strap", "fr": "Bracelet de rechange"},
              price=Decimal("50"), option_ids=("o-steel",)),
        Addon(id="a-polish", step_id="s-dial", labels={"en": "Polish", "fr": "Polissage"},
              price=Decimal("15"), option_ids=("o-other-dial",)),
    )
    return CatalogSnapshot(function_option=fn, steps=(case, dial, strap, extra), options=options, addons=addons)

@pytest.fixture
def watch_catalog() -> CatalogSnapshot:
    return make_watch_catalog()

@pytest.fixture
def scenario_a_configuration() -> Dict[str, Any]:
    return {
        "function_option_id": "fn-watch",
        "steps": ["o-steel", "o-blue", None, None],
        "extras": [],
        "addon_ids": ["a-strap"],
    }


class FakeStore:
    """
    Base en mémoire qui reproduit les garanties côté Postgres:
    - unicité de orders.stripe_session_id (doublon => None);
    - décrément atomique au plus une fois par (session, produit), plancher à zéro.
    """

    def __init__(self):
        self.settings = SiteSettings(global_discount_percent=Decimal("5"))
        self.products: Dict[str, Product] = {}
        self.catalogs: Dict[str, CatalogSnapshot] = {"fn-watch": make_watch_catalog()}
        self.carts: Dict[str, List[dict]] = {}
        self.configurations: Dict[str, dict] = {}
        self.orders: Dict[str, dict] = {}
        self.movements: set = set()
        self.sessions: List[dict] = []
        self.emails: List[dict] = []

    # catalogue
    def add_product(self, product_id: str, name: str, price: str, stock: int, active: bool = True, free_shipping: bool = False):
        self.products[product_id] = Product(
            id=product_id, name=name, price=Decimal(price), stock=stock, active=active, free_shipping=free_shipping,
        )

    def stock(self, product_id: str) -> int:
        return self.products[product_id].stock

    def fetch_products_by_ids(self, ids):
        return {str(i): self.products[str(i)] for i in ids if str(i) in self.products}

    def get_product(self, product_id):
        return self.products.get(str(product_id))

    def load_catalog_snapshot(self, function_option_id):
        return self.catalogs.get(function_option_id) or CatalogSnapshot(function_option=None)

    # panier
    def fetch_cart_items(self, user_id):
        return list(self.carts.get(user_id, []))

    def clear_cart(self, user_id):
        return len(self.carts.pop(user_id, []))

    # paiements
    def create_pending_configuration(self, *, flow, options, price, user_id):
        configuration_id = f"cfg-{len(self.configurations) + 1}"
        self.configurations[configuration_id] = {
            "type": flow, "options": options, "status": "pending", "price": price, "user_id": user_id,
        }
        return configuration_id

    def mark_configuration_paid(self, configuration_id):
        row = self.configurations.get(configuration_id)
        if not row:
            return False
        row["status"] = "paid"
        return True

    def decrement_stock(self, *, session_id, product_id, quantity) -> Optional[int]:
        key = (session_id, product_id)
        if key in self.movements:
            return None
        self.movements.add(key)
        product = self.products.get(product_id)
        if product is None or product.stock <= 0:
            return None
        new_stock = max(product.stock - quantity, 0)
        self.products[product_id] = Product(
            id=product.id, name=product.name, price=product.price, stock=new_stock,
            active=product.active, free_shipping=product.free_shipping,
        )
        return new_stock

    def get_order_by_session(self, session_id):
        return self.orders.get(session_id)

    def insert_order(self, order):
        session_id = order["stripe_session_id"]
        if session_id in self.orders:
            return None
        row = dict(order, id=f"order-{len(self.orders) + 1}")
        self.orders[session_id] = row
        return row

    # stripe / e-mail
    def create_session(self, **params):
        self.sessions.append(params)
        n = len(self.sessions)
        return {"id": f"cs_test_{n}", "url": f"https://checkout.stripe.test/c/cs_test_{n}"}

    def send_order_emails(self, **kwargs):
        self.emails.append(kwargs)
        return True


@pytest.fixture
def store(monkeypatch) -> FakeStore:
    s = FakeStore()
    monkeypatch.setattr("storefront.catalog.repository.fetch_site_settings", lambda: s.settings)
    monkeypatch.setattr("storefront.catalog.repository.fetch_products_by_ids", s.fetch_products_by_ids)
    monkeypatch.setattr("storefront.catalog.repository.get_product", s.get_product)
    monkeypatch.setattr("storefront.catalog.repository.load_catalog_snapshot", s.load_catalog_snapshot)
    monkeypatch.setattr("storefront.cart.repository.fetch_cart_items", s.fetch_cart_items)
    monkeypatch.setattr("storefront.cart.repository.clear_cart", s.clear_cart)
    monkeypatch.setattr("storefront.payments.repository.create_pending_configuration", s.create_pending_configuration)
    monkeypatch.setattr("storefront.payments.repository.mark_configuration_paid", s.mark_configuration_paid)
    monkeypatch.setattr("storefront.payments.repository.decrement_stock", s.decrement_stock)
    monkeypatch.setattr("storefront.payments.repository.get_order_by_session", s.get_order_by_session)
    monkeypatch.setattr("storefront.payments.repository.insert_order", s.insert_order)
    monkeypatch.setattr("storefront.payments.stripe_client.create_session", s.create_session)
    monkeypatch.setattr("storefront.notifications.email.send_order_emails", s.send_order_emails)
    return s

def paid_session_event(session_id: str, metadata: Dict[str, str], amount_total: int = 66500, currency_code: str = "cad",
                       event_type: str = "checkout.session.completed", payment_status: str = "paid") -> Dict[str, Any]:
    return {
        "id": f"evt_{session_id}",
        "type": event_type,
        "data": {
            "object": {
                "id": session_id,
                "object": "checkout.session",
                "payment_status": payment_status,
                "amount_total": amount_total,
                "currency": currency_code,
                "metadata": metadata,
                "customer_details": {
                    "email": "buyer@example.com",
                    "name": "Jane Buyer",
                    "address": {"line1": "1 rue Principale", "city": "Montréal", "country": "CA", "postal_code": "H2X 1Y4"},
                },
            }
        },
    }

@pytest.fixture
def paid_event():
    return paid_session_event
