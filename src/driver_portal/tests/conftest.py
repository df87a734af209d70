"""
pytest configuration for driver portal tests
"""

import os
import sys
from datetime import date, time, timedelta
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import Mock

# In-memory database before any module builds the engine
os.environ.setdefault("DATABASE_URL", "sqlite://")

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from driver_portal.models.pydantic_models import DriverCreate, DriverStatusEnum
from driver_portal.models.sql_models import Base, CarType, Company, Project
from driver_portal.services.context import AuthorizationContext, ResolvedDriver
from driver_portal.services.driver_service import assign_project, create_driver, issue_access_token


# ============================================================================
# DATABASE
# ============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ============================================================================
# SEED DATA
# ============================================================================

def _project(company, car_type, client, day, at, **extra):
    return Project(
        company_id=company.id,
        car_type_id=car_type.id,
        client_name=client,
        client_phone="+351 930 000 000",
        pickup_location="Airport T1",
        dropoff_location="Hotel Avenida",
        date=day,
        time=at,
        passengers=2,
        price=Decimal("50.00"),
        driver_fee=Decimal("30.00"),
        **extra,
    )


@pytest.fixture
def seeded(db):
    """Two companies' worth of reference data, three drivers, four projects."""
    company = Company(name="Lisbon Transfers", phone="+351 210 000 100")
    car_type = CarType(name="Minivan", capacity=7)
    db.add_all([company, car_type])
    db.commit()

    d1 = create_driver(db, DriverCreate(name="Ana Costa", license="DRV001", pin="1234"))
    d2 = create_driver(db, DriverCreate(name="Bruno Reis", license="DRV002", pin="5678"))
    d3 = create_driver(db, DriverCreate(
        name="Carla Dias", license="DRV003", pin="2468", status=DriverStatusEnum.offline
    ))
    d1_token = issue_access_token(db, d1.id)
    d3_token = issue_access_token(db, d3.id)

    today = date.today()
    p1 = _project(company, car_type, "Client P1", today + timedelta(days=1), time(10, 0))
    p2 = _project(company, car_type, "Client P2", today, time(15, 30))
    p3 = _project(company, car_type, "Client P3", today, time(9, 0))
    p4 = _project(company, car_type, "Client P4", today + timedelta(days=1), time(8, 0))
    db.add_all([p1, p2, p3, p4])
    db.commit()

    assign_project(db, p1.id, d1.id)
    assign_project(db, p2.id, d1.id)
    assign_project(db, p4.id, d1.id)
    assign_project(db, p3.id, d2.id)

    return SimpleNamespace(
        company=company, car_type=car_type,
        d1=d1, d2=d2, d3=d3,
        d1_token=d1_token, d3_token=d3_token,
        p1=p1, p2=p2, p3=p3, p4=p4,
    )


def make_context(driver) -> AuthorizationContext:
    return AuthorizationContext().bind(
        ResolvedDriver(driver_id=driver.id, driver_name=driver.name, login=driver.license)
    )


@pytest.fixture
def ctx_d1(seeded):
    return make_context(seeded.d1)


@pytest.fixture
def ctx_d2(seeded):
    return make_context(seeded.d2)


# ============================================================================
# MOCKS
# ============================================================================

@pytest.fixture
def mock_redis():
    """Mock Redis client"""
    client = Mock()
    client.incr = Mock(return_value=1)
    client.expire = Mock()
    client.delete = Mock()
    return client


@pytest.fixture
def recorded_sleep():
    """Async sleep replacement that records requested delays."""
    delays = []

    async def _sleep(delay):
        delays.append(delay)

    _sleep.delays = delays
    return _sleep


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio backend for async tests"""
    return "asyncio"


# ============================================================================
# CONFIG
# ============================================================================

def pytest_configure(config):
    config.addinivalue_line("markers", "integration: integration tests")
    config.addinivalue_line("markers", "unit: unit tests")
