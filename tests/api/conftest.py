from collections.abc import Callable, Iterator

import pytest
from fastapi.testclient import TestClient

from widget_analytics.adapters.sqlite.migrator import SQLiteMigrator
from widget_analytics.adapters.sqlite.repos import SQLiteEventStore, SQLiteTenantRepo
from widget_analytics.api.auth_utils import create_tenant_token
from widget_analytics.api.deps import get_clock, get_rate_limiter, get_rules, get_settings
from widget_analytics.api.main import app
from widget_analytics.app_shell.config import Settings
from widget_analytics.domain.entities import EventType, Tenant, WidgetConfig, WidgetEvent

from tests.helpers import MIGRATIONS_DIR, NOW_UTC, RULES_PATH, TENANT_ID, WIDGET_A, WIDGET_B

CRON_SECRET = "cron-test-secret"


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    monkeypatch.setenv("WA_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("WA_RULES_PATH", str(RULES_PATH))
    monkeypatch.setenv("WA_MIGRATIONS_DIR", str(MIGRATIONS_DIR))
    monkeypatch.setenv("CRON_SECRET", CRON_SECRET)
    s = Settings()
    s.data_dir.mkdir(parents=True)
    SQLiteMigrator(s.db_path, str(s.migrations_dir)).run_migrations()
    return s


@pytest.fixture
def client(settings, rules, clock, rate_limiter) -> Iterator[TestClient]:
    """Client bound to a fresh database, the frozen clock and a private limiter."""
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_rules] = lambda: rules
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def api_tenant(settings) -> Tenant:
    """Agency owning legacy widget A and configured widget B, in the API database."""
    repo = SQLiteTenantRepo(settings.db_path)
    t = repo.save(Tenant(id=TENANT_ID, name="Agency One", widget_id=WIDGET_A))
    repo.save_widget_config(WidgetConfig(tenant_id=TENANT_ID, widget_id=WIDGET_B))
    return t


@pytest.fixture
def store_events(settings) -> Callable[..., None]:
    store = SQLiteEventStore(settings.db_path)

    def _store(widget_id: str, event_type: EventType, n: int = 1, at=NOW_UTC) -> None:
        store.append(
            [
                WidgetEvent(widget_id=widget_id, event_type=event_type, created_at=at)
                for _ in range(n)
            ]
        )

    return _store


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_tenant_token(TENANT_ID)}"}


@pytest.fixture
def cron_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {CRON_SECRET}"}
