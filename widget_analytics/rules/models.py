from pydantic import BaseModel, Field, field_validator

from widget_analytics.domain.entities import EventType


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class AnalyticsRules(BaseModel):
    timezone: str
    event_types: list[str]

    @field_validator("event_types")
    @classmethod
    def _known_event_types(cls, value: list[str]) -> list[str]:
        known = {e.value for e in EventType}
        unknown = [v for v in value if v not in known]
        if unknown:
            raise ValueError(f"unknown event types: {', '.join(unknown)}")
        return value


class IngestRules(BaseModel):
    max_batch_size: int = Field(gt=0)


class RateLimitRules(BaseModel):
    window_seconds: int = Field(gt=0)
    max_events: int = Field(gt=0)


class AggregationRules(BaseModel):
    max_workers: int = Field(gt=0)
    tenant_timeout_seconds: float = Field(gt=0)
    default_backfill_days: int = Field(gt=0)
    default_report_days: int = Field(gt=0)
    benchmark_days: int = Field(gt=0)


class OpsRules(BaseModel):
    required_env: list[str] = []


class Rules(BaseModel):
    project: ProjectRules
    analytics: AnalyticsRules
    ingest: IngestRules
    rate_limit: RateLimitRules
    aggregation: AggregationRules
    ops: OpsRules
