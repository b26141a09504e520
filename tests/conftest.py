from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from catviewer.cache_controller import CacheController
from catviewer.photo_assembler import PhotoAssembler
from catviewer.photo_service import PhotoService
from catviewer.session import ViewerSession
from catviewer.settings import ViewerSettings
from tests.helpers import FakeObjectStore, utc

# Fixed "now" for every time-dependent fixture
NOW = utc(2025, 10, 30, 12, 0, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def viewer_settings() -> ViewerSettings:
    return ViewerSettings(pagination_horizon_days=3, list_page_size=1000, url_batch_size=5)


@pytest.fixture
def cache_controller(store: FakeObjectStore) -> CacheController:
    return CacheController(store, ttl_seconds=3600, batch_size=5, margin_seconds=300)


@pytest.fixture
def assembler(cache_controller: CacheController) -> PhotoAssembler:
    return PhotoAssembler(cache_controller)


@pytest.fixture
def photo_service(store: FakeObjectStore, assembler: PhotoAssembler, clock) -> PhotoService:
    return PhotoService(store, assembler, page_size=1000, clock=clock)


@pytest.fixture
def viewer_session(store: FakeObjectStore, viewer_settings: ViewerSettings, clock) -> ViewerSession:
    return ViewerSession(store, viewer_settings, clock=clock)


@pytest.fixture
def client(store: FakeObjectStore, viewer_session: ViewerSession) -> Generator[TestClient]:
    """FastAPI test client wired to the fake store instead of S3."""
    from catviewer.main import app

    app.state.s3_client = store
    app.state.session = viewer_session
    with TestClient(app) as test_client:
        yield test_client

    app.state.session = None
    app.state.s3_client = None
