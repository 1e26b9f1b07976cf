"""Reviewer routing rules - who gets suggested for a review query."""

import logging
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from trustweave.common.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ReviewRoutingRules(BaseModel):
    """Parsed reviewer routing rules.

    In-memory representation of review_routing.yaml. Defaults match the
    bundled file so the feedback loop works without one.
    """

    class Metadata(BaseModel):
        version: str = "1.0.0"
        last_updated: str = ""
        description: str = ""

    metadata: Metadata = Field(default_factory=Metadata)
    reviewers: List[str] = Field(
        default_factory=lambda: [
            "analyst_001",
            "analyst_002",
            "analyst_003",
            "senior_analyst_001",
            "ml_engineer_001",
        ],
        min_length=1,
    )
    senior_reviewer: str = "senior_analyst_001"
    senior_amount_threshold: float = Field(default=10_000.0, ge=0)
    specialist_reviewer: str = "ml_engineer_001"
    specialist_anomaly_threshold: int = Field(default=2, ge=0)
    load_balanced_count: int = Field(default=2, ge=0)

    @model_validator(mode="after")
    def _escalation_targets_on_roster(self) -> "ReviewRoutingRules":
        for role, reviewer in (
            ("senior_reviewer", self.senior_reviewer),
            ("specialist_reviewer", self.specialist_reviewer),
        ):
            if reviewer not in self.reviewers:
                raise ValueError(f"{role} '{reviewer}' is not in the reviewer roster")
        if len(set(self.reviewers)) != len(self.reviewers):
            raise ValueError("reviewer roster contains duplicates")
        return self


def load_routing_rules(path: Optional[Union[str, Path]] = None) -> ReviewRoutingRules:
    """Load and validate routing rules from YAML.

    Args:
        path: Path to review_routing.yaml. Returns the defaults when the
            path is None or the file does not exist.

    Raises:
        ConfigurationError: If the file exists but is malformed
    """
    if path is None:
        return ReviewRoutingRules()

    path = Path(path)
    if not path.exists():
        logger.warning("Review routing file %s not found, using defaults", path)
        return ReviewRoutingRules()

    with open(path, "r") as f:
        try:
            raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    try:
        rules = ReviewRoutingRules.model_validate(raw_config)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid review routing rules in {path}",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e

    logger.info("Loaded review routing rules v%s (%d reviewers)", rules.metadata.version, len(rules.reviewers))
    return rules
