"""
Funnel computation shared by live metrics and the daily aggregator.

Both consumers count events per type over a closed window and derive the
same metrics from those counts:

- impressions = OPEN
- clicks = OPEN + MESSAGE
- leads = CONTACT_FORM_SUBMIT
- valuations = VALUATION_VIEW

Every percentage is rounded half-up to two decimals, is 0 when its
denominator is 0 and is clamped to [0, 100]. Funnel steps are display
counts, not a strict funnel: a later step may exceed an earlier one.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from widget_analytics.domain.entities import EventType

_TWO_PLACES = Decimal("0.01")


def round2(value: float) -> float:
    """Round half-up to two decimals."""
    return float(Decimal(str(value)).quantize(_TWO_PLACES, rounding=ROUND_HALF_UP))


def raw_percentage(numerator: int, denominator: int) -> float:
    """numerator/denominator*100, guarded and clamped to [0, 100], unrounded."""
    if denominator <= 0:
        return 0.0
    raw = numerator / denominator * 100
    return min(max(raw, 0.0), 100.0)


def percentage(numerator: int, denominator: int) -> float:
    return round2(raw_percentage(numerator, denominator))


def drop_off(current: int, following: int) -> float:
    """Share of `current` that did not reach `following`."""
    return percentage(current - following, current)


# --- Counts ---


@dataclass(frozen=True)
class EventCounts:
    """Per-type event counts over one window."""

    opens: int = 0
    closes: int = 0
    messages: int = 0
    valuation_views: int = 0
    form_starts: int = 0
    form_submits: int = 0

    @classmethod
    def from_mapping(cls, counts: Mapping[str, int]) -> EventCounts:
        """Build from an {event_type: count} mapping; missing types count 0."""
        return cls(
            opens=counts.get(EventType.OPEN.value, 0),
            closes=counts.get(EventType.CLOSE.value, 0),
            messages=counts.get(EventType.MESSAGE.value, 0),
            valuation_views=counts.get(EventType.VALUATION_VIEW.value, 0),
            form_starts=counts.get(EventType.CONTACT_FORM_START.value, 0),
            form_submits=counts.get(EventType.CONTACT_FORM_SUBMIT.value, 0),
        )

    @property
    def impressions(self) -> int:
        return self.opens

    @property
    def clicks(self) -> int:
        return self.opens + self.messages

    @property
    def leads(self) -> int:
        return self.form_submits

    @property
    def valuations(self) -> int:
        return self.valuation_views


# --- Derived metrics ---


@dataclass(frozen=True)
class FunnelMetrics:
    widget_impressions: int
    widget_clicks: int
    leads_generated: int
    valuations_completed: int
    conversion_rate: float
    valuation_to_lead_rate: float
    form_start_to_submit_rate: float


def compute_metrics(counts: EventCounts) -> FunnelMetrics:
    return FunnelMetrics(
        widget_impressions=counts.impressions,
        widget_clicks=counts.clicks,
        leads_generated=counts.leads,
        valuations_completed=counts.valuations,
        conversion_rate=percentage(counts.leads, counts.impressions),
        valuation_to_lead_rate=percentage(counts.leads, counts.valuations),
        form_start_to_submit_rate=percentage(counts.leads, counts.form_starts),
    )


@dataclass(frozen=True)
class FunnelReport:
    """opened -> messaged -> valuation -> formStarted -> leadSubmitted."""

    step1_opened: int
    step2_messaged: int
    step3_valuation: int
    step4_form_started: int
    step5_lead_submitted: int
    drop_off_open_to_message: float
    drop_off_message_to_valuation: float
    drop_off_valuation_to_form: float
    drop_off_form_to_submit: float


def build_funnel(counts: EventCounts) -> FunnelReport:
    return FunnelReport(
        step1_opened=counts.impressions,
        step2_messaged=counts.messages,
        step3_valuation=counts.valuations,
        step4_form_started=counts.form_starts,
        step5_lead_submitted=counts.leads,
        drop_off_open_to_message=drop_off(counts.impressions, counts.messages),
        drop_off_message_to_valuation=drop_off(counts.messages, counts.valuations),
        drop_off_valuation_to_form=drop_off(counts.valuations, counts.form_starts),
        drop_off_form_to_submit=drop_off(counts.form_starts, counts.leads),
    )


# --- Hourly buckets ---


@dataclass
class HourlyStat:
    hour: int
    opens: int = 0
    messages: int = 0
    valuations: int = 0
    leads: int = 0


def bucket_by_hour(
    events: Iterable[tuple[str, datetime]],
    to_local: Callable[[datetime], datetime],
) -> list[HourlyStat]:
    """
    Group (event_type, created_at) pairs by local hour of day.

    Only hours that saw at least one event are returned, ascending.
    """
    by_hour: dict[int, HourlyStat] = {}

    for event_type, created_at in events:
        hour = to_local(created_at).hour
        stat = by_hour.get(hour)
        if stat is None:
            stat = by_hour[hour] = HourlyStat(hour=hour)

        if event_type == EventType.OPEN.value:
            stat.opens += 1
        elif event_type == EventType.MESSAGE.value:
            stat.messages += 1
        elif event_type == EventType.VALUATION_VIEW.value:
            stat.valuations += 1
        elif event_type == EventType.CONTACT_FORM_SUBMIT.value:
            stat.leads += 1

    return [by_hour[h] for h in sorted(by_hour)]
