"""Pytest fixtures for the Brand Offers backend tests."""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from brandoffers.database import configure_sqlite_locking, create_tables
from brandoffers.main import app
from brandoffers.models import Brand, Location, Offer
from brandoffers.record_store import RecordStore, get_store
from brandoffers.services import BrandRegistry, LinkCoordinator, LocationRegistry, OfferRegistry


# A SQLite file per test (not :memory:) so that concurrent transactions run on
# separate connections, as they would against a real server.
@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    configure_sqlite_locking(engine)
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def store(engine) -> RecordStore:
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return RecordStore(session_factory, max_attempts=5)


@pytest_asyncio.fixture
async def brands(store: RecordStore) -> BrandRegistry:
    return BrandRegistry(store)


@pytest_asyncio.fixture
async def locations(store: RecordStore, brands: BrandRegistry) -> LocationRegistry:
    return LocationRegistry(store, brands)


@pytest_asyncio.fixture
async def offers(store: RecordStore, brands: BrandRegistry) -> OfferRegistry:
    return OfferRegistry(store, brands)


@pytest_asyncio.fixture
async def links(
    store: RecordStore, offers: OfferRegistry, locations: LocationRegistry
) -> LinkCoordinator:
    return LinkCoordinator(store, offers, locations)


@pytest_asyncio.fixture
async def client(store: RecordStore):
    app.dependency_overrides[get_store] = lambda: store
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def sample_brand(brands: BrandRegistry) -> Brand:
    return await brands.create("Acme", "Everything for everyone")


@pytest_asyncio.fixture
async def other_brand(brands: BrandRegistry) -> Brand:
    return await brands.create("Globex", "The other brand")


@pytest_asyncio.fixture
async def sample_location(locations: LocationRegistry, sample_brand: Brand) -> Location:
    return await locations.create(sample_brand.id, "Main St", "1 Main St, Springfield")


@pytest_asyncio.fixture
async def sample_offer(offers: OfferRegistry, sample_brand: Brand) -> Offer:
    return await offers.create(sample_brand.id, "10% Off", "Ten percent off everything")
