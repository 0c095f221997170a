import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.database import Base, get_db
from src.main import app
from src.tours.repository import TourRepository
from src.tours.schemas import BusConfig, PartnerAgency, Tour, TourCosts, TourFees


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def repository(db):
    return TourRepository(db)


@pytest.fixture
def make_tour(repository):
    """Persist a tour; keyword arguments override the defaults"""
    counter = {"n": 0}

    def factory(**overrides):
        counter["n"] += 1
        data = {
            "id": f"tour_{counter['n']}",
            "name": f"Tour {counter['n']}",
            "date": "2026-11-20",
            "fees": TourFees(regular=1000),
            "bus_config": BusConfig(total_seats=40),
            "costs": TourCosts(),
            "partner_agencies": [],
        }
        data.update(overrides)
        return repository.create_tour(Tour(**data))

    return factory


@pytest.fixture
def agency():
    return PartnerAgency(id="agency_1", name="Green Trails", email="ops@greentrails.example")
