"""
Pytest fixtures for forecourt backend tests.

Provides test database setup, a station with one diesel dispenser and a
calibrated tank, store products, payment methods, and a test client.
"""

import pytest
from forecourt import create_app
from forecourt.extensions import db
from forecourt.models import (
    Dispenser,
    Hose,
    Location,
    PaymentMethod,
    Product,
    Tank,
    TankCalibrationPoint,
)
from forecourt.services.catalog_service import DEFAULT_PAYMENT_METHODS
from forecourt.services.location_service import set_consolidated_payment_mode


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'DEFAULT_CONSOLIDATED_PAYMENT_MODE': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def payment_methods(db_session):
    """Default payment method registry."""
    for code, name in DEFAULT_PAYMENT_METHODS:
        db_session.add(PaymentMethod(code=code, name=name))
    db_session.commit()


@pytest.fixture(scope='function')
def location(db_session):
    """Station in per-hose payment mode."""
    loc = Location(name="Station North", code="NORTH")
    db_session.add(loc)
    db_session.commit()
    return loc


@pytest.fixture(scope='function')
def other_location(db_session):
    loc = Location(name="Station South", code="SOUTH")
    db_session.add(loc)
    db_session.commit()
    return loc


@pytest.fixture(scope='function')
def consolidated_location(location):
    """The same station switched to per-product payment declarations."""
    set_consolidated_payment_mode(location.id, True)
    return location


@pytest.fixture(scope='function')
def diesel(db_session):
    """Diesel, priced at 4.00 per liter."""
    product = Product(
        code="DIESEL",
        name="Diesel",
        product_type="FUEL",
        unit="GALLONS",
        is_fuel=True,
        sale_price=4.0,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def motor_oil(db_session):
    """Store product counted in units."""
    product = Product(
        code="OIL-20W50",
        name="Motor oil 20W50",
        product_type="LUBRICANT",
        unit="UNITS",
        sale_price=12.5,
        current_stock=10,
        min_stock=3,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def diesel_tank(db_session, location, diesel):
    """
    5000 gal diesel tank holding 3000 gal.

    Calibration: 0 cm -> 0 L, 100 cm -> 7570.82 L, 200 cm -> 18927.05 L.
    """
    tank = Tank(
        location_id=location.id,
        product_id=diesel.id,
        name="Diesel tank 1",
        unit="GALLONS",
        capacity=5000,
        current_level=3000,
        min_level=500,
    )
    db_session.add(tank)
    db_session.flush()
    for height, volume in [(0, 0.0), (100, 7570.82), (200, 18927.05)]:
        db_session.add(TankCalibrationPoint(tank_id=tank.id, height_cm=height, volume_liters=volume))
    db_session.commit()
    return tank


@pytest.fixture(scope='function')
def diesel_hose(db_session, location, diesel):
    """Dispenser 1, hose 1, last read at 1000.00."""
    dispenser = Dispenser(location_id=location.id, number="1")
    db_session.add(dispenser)
    db_session.flush()
    hose = Hose(
        dispenser_id=dispenser.id,
        product_id=diesel.id,
        number="1",
        previous_reading=900.0,
        current_reading=1000.0,
    )
    db_session.add(hose)
    db_session.commit()
    return hose


@pytest.fixture(scope='function')
def station(payment_methods, location, diesel, motor_oil, diesel_tank, diesel_hose):
    """Everything a full closure needs."""
    return location


def closure_payload(location_id: int, **overrides) -> dict:
    """
    Minimal valid closure body: one diesel hose selling 50 gal
    (189.27 L, 757.08) paid in cash.
    """
    payload = {
        "location_id": location_id,
        "started_at": "2026-03-01T06:00:00Z",
        "ended_at": "2026-03-01T14:00:00Z",
        "dispensers": [
            {
                "number": "1",
                "hoses": [
                    {
                        "number": "1",
                        "product_code": "DIESEL",
                        "previous_reading": 1000.0,
                        "current_reading": 1050.0,
                        "unit": "galones",
                    }
                ],
            }
        ],
        "summary": {
            "total_declared": 757.08,
            "payment_methods": [{"method": "CASH", "amount": 757.08}],
        },
    }
    payload.update(overrides)
    return payload
