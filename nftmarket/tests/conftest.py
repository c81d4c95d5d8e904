import os

# settings are read at import time; give the test run a database and secret
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from sqlalchemy.orm import sessionmaker

# FORCE model registration
import nftmarket.models  # noqa

from nftmarket.db.base import Base
from nftmarket.db.session import build_engine
from nftmarket.deploy import deploy
from nftmarket.services.sale_engine import SaleEngine
from nftmarket.tests.helpers import BIDDER, BUYER, INITIAL_BALANCE, OWNER, T0, USER, FakeClock, MarketStack


@pytest.fixture(scope="function")
def session_factory(tmp_path):
    # file-backed so a second session sees the first one's commits
    engine = build_engine(f"sqlite:///{tmp_path / 'market.db'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    try:
        yield factory
    finally:
        engine.dispose()


@pytest.fixture(scope="function")
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FakeClock(T0)


@pytest.fixture
def stack(db):
    addresses = deploy(db, deployer=OWNER, holders=[USER, BUYER, BIDDER], initial_balance=INITIAL_BALANCE)
    return MarketStack(db, addresses)


@pytest.fixture
def engine(clock):
    return SaleEngine(clock=clock)
