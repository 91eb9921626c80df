"""
Resolver component port definitions.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from widget_analytics.domain.entities import Tenant, WidgetConfig


class TenantRepoPort(Protocol):
    """Tenant and widget ownership lookups."""

    def get(self, tenant_id: str) -> Tenant | None:
        """Get tenant by id."""
        ...

    def list_active_widget_configs(self, tenant_id: str) -> list[WidgetConfig]:
        """Active widget configurations in creation order."""
        ...

    def known_widget_ids(self, widget_ids: Sequence[str]) -> set[str]:
        """Subset of widget_ids that some tenant owns."""
        ...

    def list_active(self) -> list[Tenant]:
        """Active tenants."""
        ...
