import logging
import os
import sys
from pathlib import Path

from widget_analytics.rules.models import Rules

logger = logging.getLogger(__name__)

DB_FILENAME = "widget_analytics.db"


class Settings:
    """Process settings read from the environment."""

    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("WA_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / DB_FILENAME)
        self.rules_path = Path(os.environ.get("WA_RULES_PATH", self.base_dir / "rules.yaml"))
        self.migrations_dir = Path(
            os.environ.get("WA_MIGRATIONS_DIR", self.base_dir / "migrations")
        )
        self.cron_secret = os.environ.get("CRON_SECRET")


def validate_ops_rules(rules: Rules, data_dir: Path) -> None:
    """
    Validate operational requirements before startup.
    """
    # 1. Data dir must exist (created if missing) and be writable
    data_dir.mkdir(parents=True, exist_ok=True)
    if not os.access(data_dir, os.W_OK):
        logger.critical("Data directory %s is not writable", data_dir)
        sys.exit(1)

    # 2. Check Required Env
    missing = [name for name in rules.ops.required_env if name not in os.environ]
    if missing:
        logger.critical("Missing required environment variables: %s", ", ".join(missing))
        sys.exit(1)

    logger.info("Configuration validated (rules %s)", rules.project.rules_version)
