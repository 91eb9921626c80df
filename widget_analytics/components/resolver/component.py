"""
Resolver component - Tenant/widget ownership.

Invariants:
- Widget set order: legacy widget id (if any), then active configs by creation
- Duplicates are dropped keeping the first occurrence
- An empty set is a valid answer, not an error
"""

from __future__ import annotations

import logging

from widget_analytics.domain.entities import Tenant
from widget_analytics.domain.errors import NotFoundError

from .models import WidgetSet
from .ports import TenantRepoPort

logger = logging.getLogger(__name__)


def resolve_widget_set(tenant_id: str, *, repo: TenantRepoPort) -> WidgetSet:
    """
    Resolve every widget id owned by a tenant.

    Raises:
        NotFoundError: if the tenant does not exist.
    """
    tenant = repo.get(tenant_id)
    if tenant is None:
        raise NotFoundError(f"Tenant not found: {tenant_id}")

    candidates: list[str] = []
    if tenant.widget_id:
        candidates.append(tenant.widget_id)
    candidates.extend(c.widget_id for c in repo.list_active_widget_configs(tenant_id))

    # dict preserves insertion order
    widget_ids = tuple(dict.fromkeys(candidates))
    logger.debug("Resolved %d widget(s) for tenant %s", len(widget_ids), tenant_id)
    return WidgetSet(tenant_id=tenant_id, widget_ids=widget_ids)


def list_active_tenants(*, repo: TenantRepoPort) -> list[Tenant]:
    return repo.list_active()
