import pytest
from fastapi.testclient import TestClient

from seed_data import seed_catalogue
from src.config import settings
from src.database import Database
from src.main import create_app
from src.bookings.schemas import BookingRequest
from src.bookings.booking_service import BookingService
from src.availability.service import AvailabilityService
from src.coupons.service import CouponEvaluator
from src.payments.reconciler import PaymentReconciler

EVENT_DATE = "2030-06-15"

CUSTOMER = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "email": "ada@example.com",
    "phone": "+49 89 1234567",
    "address": "Marienplatz 1",
    "city": "Munich",
    "state": "Bavaria",
    "zip": "80331",
    "country": "Germany",
}


@pytest.fixture
def database(tmp_path):
    # File-backed so worker threads share one database
    db = Database(url=f"sqlite:///{tmp_path / 'foodcart.db'}", statement_timeout_ms=30000)
    db.create_all()
    yield db
    db.dispose()


@pytest.fixture
def catalogue(database):
    """Seeded rows keyed like ``cart_taco`` or ``coupon_save10``"""
    with database.session_scope() as db:
        seeded = seed_catalogue(db)
    return seeded


@pytest.fixture
def ids(catalogue):
    return {key: row.id for key, row in catalogue.items()}


@pytest.fixture
def make_request(ids):
    def _make(cart="cart_taco", date=EVENT_DATE, start="14:00", end="16:00", **overrides):
        payload = {
            "cart_id": ids[cart] if isinstance(cart, str) else cart,
            "booking_date": date,
            "start_time": start,
            "end_time": end,
            "customer": dict(CUSTOMER),
            "payment_method": "reservation",
        }
        payload.update(overrides)
        return BookingRequest(**payload)

    return _make


@pytest.fixture
def booking_service(database):
    return BookingService(database)


@pytest.fixture
def availability_service(database):
    return AvailabilityService(database)


@pytest.fixture
def coupon_evaluator(database):
    return CouponEvaluator(database)


@pytest.fixture
def reconciler(database):
    return PaymentReconciler(database)


@pytest.fixture
def client(database, catalogue, monkeypatch):
    monkeypatch.setattr(settings, "LOG_FILE", None)
    app = create_app(database)
    with TestClient(app) as test_client:
        yield test_client
