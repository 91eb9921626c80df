from datetime import UTC, datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
MIGRATIONS_DIR = ROOT / "migrations"
RULES_PATH = ROOT / "rules.yaml"

# 12:00 local (Europe/Rome, CEST) on 2025-06-15
NOW_UTC = datetime(2025, 6, 15, 10, 0, tzinfo=UTC)

TENANT_ID = "agency-1"
WIDGET_A = "widget-a"
WIDGET_B = "widget-b"
