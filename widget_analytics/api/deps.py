import secrets
from datetime import date, datetime
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from widget_analytics.adapters.sqlite.repos import (
    SQLiteDailyAggregateRepo,
    SQLiteEventStore,
    SQLiteTenantRepo,
)
from widget_analytics.adapters.time_local import create_time_adapter
from widget_analytics.api.auth_utils import tenant_id_from_token
from widget_analytics.api.errors import to_http
from widget_analytics.app_shell.config import Settings
from widget_analytics.app_shell.rate_limit import WidgetRateLimiter
from widget_analytics.domain.errors import AuthError, ValidationError
from widget_analytics.ports.time import TimePort
from widget_analytics.rules.loader import load_rules
from widget_analytics.rules.models import Rules


# --- Settings ---
@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    return load_rules(get_settings().rules_path)


# --- Clock ---
@lru_cache
def get_clock() -> TimePort:
    return create_time_adapter(get_rules().analytics.timezone)


# --- Repos ---
def get_tenant_repo(settings: Settings = Depends(get_settings)) -> SQLiteTenantRepo:
    return SQLiteTenantRepo(settings.db_path)


def get_event_store(settings: Settings = Depends(get_settings)) -> SQLiteEventStore:
    return SQLiteEventStore(settings.db_path)


def get_aggregate_repo(settings: Settings = Depends(get_settings)) -> SQLiteDailyAggregateRepo:
    return SQLiteDailyAggregateRepo(settings.db_path)


# --- Rate limiting ---
# Process-wide: the limiter's counters must outlive a single request.
@lru_cache
def get_rate_limiter() -> WidgetRateLimiter:
    return WidgetRateLimiter(get_rules().rate_limit, get_clock())


# --- Auth ---
bearer_scheme = HTTPBearer(auto_error=False)


def get_session_tenant_id(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """Tenant id from the session token (cookie first, then Authorization header)."""
    token = None
    cookie_token = request.cookies.get("access_token")
    if cookie_token and cookie_token.startswith("Bearer "):
        token = cookie_token.split(" ", 1)[1]
    elif credentials is not None:
        token = credentials.credentials

    if not token:
        raise to_http(AuthError("Not authenticated"))

    tenant_id = tenant_id_from_token(token)
    if tenant_id is None:
        raise to_http(AuthError("Invalid or expired session"))
    return tenant_id


def get_current_tenant_id(
    session_tenant_id: Annotated[str, Depends(get_session_tenant_id)],
    tenant_id: Annotated[str | None, Query(alias="tenantId")] = None,
) -> str:
    """Session tenant; an explicit tenantId must name the same tenant."""
    if tenant_id is not None and tenant_id != session_tenant_id:
        raise to_http(AuthError("Not authorized for this tenant"))
    return session_tenant_id


def require_scheduler(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    settings: Settings = Depends(get_settings),
) -> None:
    """Scheduler bearer token must equal CRON_SECRET."""
    expected = settings.cron_secret
    if not expected or credentials is None:
        raise to_http(AuthError("Unauthorized"))
    if not secrets.compare_digest(credentials.credentials.encode(), expected.encode()):
        raise to_http(AuthError("Unauthorized"))


# --- Parsing ---
def parse_day(value: str | None, field: str, clock: TimePort) -> date | None:
    """
    Parse a YYYY-MM-DD day or an ISO timestamp.

    Aware timestamps are converted to the local calendar day.
    """
    if value is None or value == "":
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        pass
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"Invalid {field}: {value}") from e
    return clock.to_local(dt).date() if dt.tzinfo is not None else dt.date()
