import pytest
from fastapi.testclient import TestClient

from nftmarket.core.clock import get_clock
from nftmarket.db.session import get_db
from nftmarket.main import create_app


@pytest.fixture
def client(session_factory, clock):
    app = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    return TestClient(app)

