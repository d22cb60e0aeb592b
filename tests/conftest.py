import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from aeoscore.catalog.models import CatalogImage, CatalogItem
from aeoscore.db.schema import metadata, tenants
from aeoscore.plans import load_plans


@pytest.fixture()
def engine():
    # Runners touch the database from executor threads; share one connection.
    engine = create_engine(
        "sqlite://",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def seeded_engine(engine):
    with engine.begin() as conn:
        conn.execute(tenants.insert(), [
            {"domain": "hexco.myshopify.com", "name": "HexCo", "plan": "FREE", "access_token": "shpat_hex"},
            {"domain": "widgetly.myshopify.com", "name": "Widgetly", "plan": "PLUS", "access_token": "shpat_widget"},
            {"domain": "lumi-threads.myshopify.com", "name": None, "plan": "PREMIUM", "access_token": None},
        ])
    return engine


@pytest.fixture()
def plans():
    return load_plans()


def make_item(item_id="1", **overrides):
    """A fully optimised item; override fields to degrade it."""
    fields = {
        "item_id": item_id,
        "title": f"Alpha Serum {item_id}",
        "handle": f"alpha-serum-{item_id}",
        "description": "x" * 320,
        "images": [CatalogImage(url=f"https://cdn.example.com/{i}.jpg", alt_text=f"Photo {i}") for i in range(3)],
        "product_type": "Skincare",
        "vendor": "HexCo",
        "tags": ["serum", "vitamin c", "vegan", "face", "glow", "daily"],
        "seo_title": "Alpha Serum | HexCo",
        "seo_description": "A bright vitamin C serum.",
        "metafields": [{"namespace": "custom", "key": "ingredients"}],
    }
    fields.update(overrides)
    return CatalogItem(**fields)


@pytest.fixture()
def item_factory():
    return make_item
