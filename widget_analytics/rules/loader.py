import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from widget_analytics.rules.models import Rules

logger = logging.getLogger(__name__)


def load_rules(path: Path | str) -> Rules:
    """
    Read rules.yaml and validate it against the Rules schema.

    Raises:
        FileNotFoundError: the file does not exist.
        ValueError: the YAML cannot be parsed or does not match the schema.
    """
    rules_path = Path(path)
    if not rules_path.is_file():
        raise FileNotFoundError(f"Rules file not found at: {rules_path}")

    try:
        data = yaml.safe_load(rules_path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in {rules_path.name}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"{rules_path.name} must contain a mapping of rule sections")

    try:
        rules = Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed for {rules_path.name}:\n{e}") from e

    logger.debug(
        "Loaded rules %s (timezone %s, %d events/%ss per widget)",
        rules.project.rules_version,
        rules.analytics.timezone,
        rules.rate_limit.max_events,
        rules.rate_limit.window_seconds,
    )
    return rules
