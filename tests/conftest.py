import os

# Must be set before reviewflow.core.config is imported
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import reviewflow.models  # noqa: F401
from reviewflow.api.deps import get_draft_store, get_evidence_uploader, get_order_verifier
from reviewflow.db.session import Base, get_db
from reviewflow.main import app
from reviewflow.models import Campaign, Product
from reviewflow.services.draft_store import DraftStore
from tests.fakes import FakeUploader, FakeVerifier


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
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store():
    return DraftStore(ttl_minutes=30)


@pytest.fixture
def verifier():
    return FakeVerifier({
        "123-0000000-0000001": "B000000001",
        "123-0000000-0000002": "B000000003",
    })


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def client(db, store, verifier, uploader):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_draft_store] = lambda: store
    app.dependency_overrides[get_order_verifier] = lambda: verifier
    app.dependency_overrides[get_evidence_uploader] = lambda: uploader
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_campaign(db):
    def _make(products=(), **kwargs):
        fields = {"name": "Spring Giveaway", "marketplace": "amazon.com"}
        fields.update(kwargs)
        campaign = Campaign(**fields)
        for title, asin in products:
            campaign.products.append(Product(title=title, asin=asin))
        db.add(campaign)
        db.commit()
        db.refresh(campaign)
        return campaign
    return _make


@pytest.fixture
def order_campaign(make_campaign):
    """Campaign without linked products: customers enter an order number."""
    return make_campaign(promo_message="Get a free gift card for your feedback!")


@pytest.fixture
def product_campaign(make_campaign):
    """Campaign with one linked product."""
    return make_campaign(name="Blender Launch", products=[("Pro Blender", "B000000002")])
