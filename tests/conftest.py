"""
Pytest configuration and fixtures for tests.

This file is automatically loaded by pytest and provides shared fixtures
and configuration for all tests.
"""

import os
import sys

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Set required environment variables before importing app modules
os.environ.setdefault('RUNTIME_ENVIRONMENT', 'TEST')
os.environ.setdefault('DB_URL', 'sqlite+aiosqlite:///:memory:')
os.environ.setdefault('LOG_MASK_SECRETS', 'true')

# Add parent directory to Python path so tests can import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from models.currency import FxConfig
from models.customer import Customer
from models.product import Product, ProductVariant, VariantPrice
from models.region import Region
from services.currency import CurrencyConverter
from services.pricing import PricingService

EU_REGION_ID = "reg_eu"
US_REGION_ID = "reg_us"
PL_REGION_ID = "reg_pl"
DESIGN_VARIANT_ID = "variant_custom"
POSTER_VARIANT_ID = "variant_poster"


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def test_engine():
    """Create test database engine (in-memory SQLite)."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool
    )

    from db import Base
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine):
    """Create test database session."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def store_data(test_session):
    """
    Seed regions and catalog.

    - reg_eu (EUR, de/fr), reg_us (USD, us), reg_pl (PLN, pl)
    - design-your-own product with "Custom" variant, priced in every currency
    - poster product whose variant has EUR/USD prices but no PLN price
    """
    test_session.add_all([
        Region(id=EU_REGION_ID, name="Europe", currency_code="eur", countries=["de", "fr"]),
        Region(id=US_REGION_ID, name="United States", currency_code="usd", countries=["us"]),
        Region(id=PL_REGION_ID, name="Poland", currency_code="pln", countries=["pl"]),
        Product(id="prod_design", handle="design-your-own", title="Design Your Own",
                subtitle="Your artwork, our panel", thumbnail="https://cdn.example.com/dyo.png"),
        Product(id="prod_poster", handle="poster", title="Poster"),
    ])
    await test_session.flush()
    test_session.add_all([
        ProductVariant(id=DESIGN_VARIANT_ID, product_id="prod_design", title="Custom"),
        ProductVariant(id=POSTER_VARIANT_ID, product_id="prod_poster", title="Default"),
    ])
    await test_session.flush()
    test_session.add_all([
        VariantPrice(variant_id=DESIGN_VARIANT_ID, currency_code="eur", amount=0),
        VariantPrice(variant_id=DESIGN_VARIANT_ID, currency_code="usd", amount=0),
        VariantPrice(variant_id=DESIGN_VARIANT_ID, currency_code="pln", amount=0),
        VariantPrice(variant_id=POSTER_VARIANT_ID, currency_code="eur", amount=1500),
        VariantPrice(variant_id=POSTER_VARIANT_ID, currency_code="usd", amount=1700),
    ])
    await test_session.commit()
    return test_session


@pytest_asyncio.fixture
async def guest_customer(test_session):
    customer = Customer(id="cus_guest", email="buyer@example.com", has_account=False)
    test_session.add(customer)
    await test_session.commit()
    return customer


# ============================================================================
# Pricing Fixtures
# ============================================================================

@pytest.fixture
def pricing_table():
    """Pricing table shipped in data/pricing.json."""
    return PricingService.load_pricing_table()


@pytest.fixture
def converter():
    """Converter with default FX rates only (EUR 1.0, USD 1.08, GBP 0.85, PLN 4.3)."""
    return CurrencyConverter(FxConfig())
