import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["STATUS_MONITOR_ENABLED"] = "false"

from datetime import timedelta  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from backoffice.core.availability import today_utc  # noqa: E402
from backoffice.database import Base, get_db  # noqa: E402
from backoffice.main import app  # noqa: E402
from backoffice.models.products import Product  # noqa: E402

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_product(db_session):
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        values = {
            "product_id": f"PROD-TEST-{counter['n']:03d}",
            "name": f"Test Product {counter['n']}",
            "category": "Groceries",
            "description": "",
            "cost_price": Decimal("10.00"),
            "selling_price": Decimal("15.00"),
            "quantity": 50,
            "unit": "piece",
            "expiry_date": today_utc() + timedelta(days=365),
            "threshold_value": 5,
        }
        values.update(overrides)

        product = Product(**values)
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product

    return _make


@pytest.fixture
def product_payload():
    return {
        "name": "Basmati Rice",
        "category": "Groceries",
        "description": "5kg bag",
        "cost_price": "8.50",
        "selling_price": "12.00",
        "quantity": 40,
        "unit": "bag",
        "expiry_date": (today_utc() + timedelta(days=200)).isoformat(),
        "threshold_value": 10,
    }
