"""
Resolver component - Tenant/widget ownership.

Hides the legacy single-widget field and the widget configuration list
behind one ordered, deduplicated set of widget ids per tenant.
"""

from .component import (
    list_active_tenants,
    resolve_widget_set,
)
from .models import WidgetSet
from .ports import TenantRepoPort

__all__ = [
    # Entry points
    "list_active_tenants",
    "resolve_widget_set",
    # Models
    "WidgetSet",
    # Ports
    "TenantRepoPort",
]
