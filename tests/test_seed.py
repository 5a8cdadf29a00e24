from sqlmodel import select

from app.models import Product
from app.services.seed import INITIAL_PRODUCTS, seed_initial_products


def test_seeds_empty_catalogue(session):
    assert seed_initial_products(session) == len(INITIAL_PRODUCTS)
    assert len(session.exec(select(Product)).all()) == 4


def test_skips_when_products_exist(session, product):
    assert seed_initial_products(session) == 0
    assert len(session.exec(select(Product)).all()) == 1


def test_failure_is_logged_not_raised(session, monkeypatch, caplog):
    def broken_commit():
        raise RuntimeError("database is locked")

    monkeypatch.setattr(session, "commit", broken_commit)

    assert seed_initial_products(session) == 0
    assert "Error seeding products" in caplog.text
