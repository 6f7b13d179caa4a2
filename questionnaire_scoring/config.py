"""
Questionnaire Scoring Engine - Configuration.

============================================================
PURPOSE
============================================================
Engine-level settings for the Questionnaire Scoring Engine.

These are NOT scoring configurations (those are per
questionnaire, see types.ScoringConfiguration). They control
how the engine itself behaves across all questionnaires.

============================================================
ENVIRONMENT
============================================================
ScoringEngineConfig.from_env() reads (after load_dotenv):

    SCORING_ENGINE_VERSION        engine version tag
    SCORING_APPLY_REVERSE         apply reverse_score metadata
    SCORING_FALLBACK_COLOR        color of the no-match result
    SCORING_FALLBACK_LABEL        label of the no-match result
    SCORING_PERCENTAGE_PRECISION  decimals for percentages
    SCORING_TREND_THRESHOLD       stable-trend tolerance (points)
    SCORING_LOG_LEVEL             logging level

============================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List

from dotenv import load_dotenv


@dataclass(frozen=True)
class ScoringEngineConfig:
    """
    Master configuration for the Questionnaire Scoring Engine.

    ============================================================
    REVERSE SCORING
    ============================================================
    Questions may carry metadata.scoring.reverse_score. When
    apply_reverse_scoring is on (default) the resolver inverts
    the resolved score on the question's scale. Turning it off
    reproduces scores computed without reverse scoring.

    ============================================================
    """

    engine_version: str = "1.0.0"

    # Question resolution
    apply_reverse_scoring: bool = True

    # No-match classification
    fallback_label: str = "No Risk Assessment"
    fallback_color: str = "#9CA3AF"

    # Output formatting
    percentage_precision: int = 2

    # Analytics: mean difference (in score points) still considered stable
    trend_stability_threshold: float = 0.5

    log_level: str = "INFO"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "engine_version": self.engine_version,
            "apply_reverse_scoring": self.apply_reverse_scoring,
            "fallback_label": self.fallback_label,
            "fallback_color": self.fallback_color,
            "percentage_precision": self.percentage_precision,
            "trend_stability_threshold": self.trend_stability_threshold,
            "log_level": self.log_level,
        }

    @classmethod
    def from_env(cls) -> "ScoringEngineConfig":
        """Load configuration from environment variables."""
        load_dotenv()
        return cls(
            engine_version=os.getenv("SCORING_ENGINE_VERSION", "1.0.0"),
            apply_reverse_scoring=os.getenv("SCORING_APPLY_REVERSE", "true").lower() == "true",
            fallback_label=os.getenv("SCORING_FALLBACK_LABEL", "No Risk Assessment"),
            fallback_color=os.getenv("SCORING_FALLBACK_COLOR", "#9CA3AF"),
            percentage_precision=int(os.getenv("SCORING_PERCENTAGE_PRECISION", "2")),
            trend_stability_threshold=float(os.getenv("SCORING_TREND_THRESHOLD", "0.5")),
            log_level=os.getenv("SCORING_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []
        if self.percentage_precision < 0:
            errors.append("percentage_precision must be >= 0")
        if self.trend_stability_threshold < 0:
            errors.append("trend_stability_threshold must be >= 0")
        if logging.getLevelName(self.log_level.upper()) == f"Level {self.log_level.upper()}":
            errors.append(f"Unknown log level: {self.log_level}")
        return errors


# ============================================================
# DEFAULT CONFIGURATION
# ============================================================


def get_default_config() -> ScoringEngineConfig:
    """Return the default engine configuration."""
    return ScoringEngineConfig()


def configure_logging(config: ScoringEngineConfig) -> None:
    """Apply the configured log level to the package logger."""
    logging.getLogger("questionnaire_scoring").setLevel(config.log_level.upper())
