from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import backend.models  # noqa: F401
from backend.database import Base
from backend.main import app
from backend.routers.deps import get_storage
from backend.services.storage import MemStorage, SqlStorage


@pytest.fixture()
def session_factory() -> Generator:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(params=["memory", "database"])
def any_storage(request, session_factory):
    if request.param == "memory":
        return MemStorage()
    return SqlStorage(session_factory)


@pytest.fixture()
def storage() -> MemStorage:
    return MemStorage()


@pytest.fixture()
def client(storage) -> Generator[TestClient, None, None]:
    # The lifespan still builds app.state.storage; handlers receive the fixture instead.
    app.dependency_overrides[get_storage] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def lipid_panel() -> dict:
    return {
        "patientId": "P-100",
        "testType": "lipid",
        "parameters": {"Total Cholesterol": "250", "HDL Cholesterol": "45"},
    }
