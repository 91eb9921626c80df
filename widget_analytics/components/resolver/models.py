"""
Resolver component models.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class WidgetSet:
    """
    Every widget id a tenant owns, legacy widget first.

    Recomputed on each resolution; never cached.
    """

    tenant_id: str
    widget_ids: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.widget_ids

    def __len__(self) -> int:
        return len(self.widget_ids)

    def __contains__(self, widget_id: object) -> bool:
        return widget_id in self.widget_ids
