"""
Pytest fixtures for the store API tests.

Every test gets a fresh in-memory SQLite database and a TestClient whose
``get_session`` dependency is bound to it.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

from app.core.security import create_access_token, get_password_hash
from app.db.session import build_engine, create_db_and_tables, get_session
from app.main import app
from app.models import Membership, Product, User, UserRole
from app.services.s3 import get_s3_service


PASSWORD = "skate123"


@pytest.fixture(scope="session")
def password_hash():
    return get_password_hash(PASSWORD)


@pytest.fixture(scope="function")
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    create_db_and_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def session(engine):
    with Session(engine) as session:
        yield session


class FakeS3:
    """Records uploads instead of talking to AWS."""

    base_url = "https://test-bucket.s3.ap-south-1.amazonaws.com"

    def __init__(self):
        self.uploaded = []
        self.deleted = []

    def upload_product_image(self, file_content, file_name, content_type="image/jpeg"):
        self.uploaded.append((file_name, content_type, file_content))
        return f"{self.base_url}/products/{file_name}"

    def delete_product_image(self, image_url):
        self.deleted.append(image_url)
        return image_url.startswith(self.base_url)


@pytest.fixture(scope="function")
def fake_s3():
    return FakeS3()


@pytest.fixture(scope="function")
def client(session, fake_s3):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_s3_service] = lambda: fake_s3
    # Not used as a context manager: the lifespan (file database, demo seed) stays off
    yield TestClient(app)
    app.dependency_overrides.clear()


def _make_user(session, password_hash, email, role=UserRole.CUSTOMER, full_name="Test Skater"):
    user = User(email=email, full_name=full_name, password_hash=password_hash, role=role)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture(scope="function")
def customer(session, password_hash):
    return _make_user(session, password_hash, "skater@example.com")


@pytest.fixture(scope="function")
def other_customer(session, password_hash):
    return _make_user(session, password_hash, "rival@example.com", full_name="Rival Skater")


@pytest.fixture(scope="function")
def admin_user(session, password_hash):
    return _make_user(session, password_hash, "admin@example.com", role=UserRole.ADMIN, full_name="Rink Admin")


def auth_headers(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': user.email})}"}


@pytest.fixture(scope="function")
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture(scope="function")
def other_headers(other_customer):
    return auth_headers(other_customer)


@pytest.fixture(scope="function")
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture(scope="function")
def product(session):
    product = Product(name="Elite Figure Skates", category="Ice Skates", price=100.0, stock_quantity=10)
    session.add(product)
    session.commit()
    session.refresh(product)
    return product


@pytest.fixture(scope="function")
def plan(session):
    plan = Membership(name="Gold", price=50.0, duration_days=30, benefits={"list": ["Free rink entry"]})
    session.add(plan)
    session.commit()
    session.refresh(plan)
    return plan
